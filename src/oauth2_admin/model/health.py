import asyncio


class HealthGauge:
    """
    A makeshift readiness signal.

    Unexpected failures (store errors, bugs; not validation or conflict outcomes) bump the gauge with ``womp``.
    The background tick drains it by one every interval. A burst of failures pushes the value above the threshold
    and ``/internal/ready`` starts answering 503 until the gauge drains again.
    """

    def __init__(self, value: int = 0, health_threshold: int = 100) -> None:
        self._value = value
        self._health_threshold = health_threshold
        self._lock = asyncio.Lock()

    async def womp(self, d=1) -> int:
        async with self._lock:
            self._value += int(d)
            return self._value

    async def tick(self) -> None:
        async with self._lock:
            if self._value > 0:
                self._value -= 1

    async def is_healthy(self) -> bool:
        async with self._lock:
            return self._value <= self._health_threshold
