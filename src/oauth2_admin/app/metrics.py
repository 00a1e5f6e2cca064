"""
Metrics Abstraction Layer

Handlers, middlewares and background tasks emit metrics through :class:`MetricsClient` so the backend can be chosen
at deploy time.

Key Components:
- MetricsClient: Abstract interface for all metrics operations
- TelegrafMetricsClient: Wrapper around ``aio_statsd.TelegrafStatsdClient``
- NoOpMetricsClient: No-operation client for disabled metrics
- create_metrics_client: Factory function for backend selection

Metric names are given without the service prefix; the Telegraf client prepends the configured ``statsd_prefix``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from aio_statsd import TelegrafStatsdClient

logger = logging.getLogger(__name__)


class MetricsClient(ABC):
    """
    Vendor-agnostic metrics interface.

    Tags follow the StatsD convention of a flat ``tag_dict``.
    """

    async def connect(self) -> None:
        """Open any network resources. Called once at startup."""

    @abstractmethod
    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Increment a counter metric, e.g. ``server.request.count``."""

    @abstractmethod
    def gauge(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Set a point-in-time value."""

    @abstractmethod
    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record a duration in seconds."""

    @abstractmethod
    async def close(self) -> None:
        """Flush pending metrics and release network resources."""


class TelegrafMetricsClient(MetricsClient):
    def __init__(self, telegraf_client: TelegrafStatsdClient, prefix: str = ""):
        self.client = telegraf_client
        self.prefix = prefix

    def _name(self, name: str) -> str:
        if not self.prefix:
            return name
        return f"{self.prefix}.{name}"

    async def connect(self) -> None:
        await self.client.connect()

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.increment(self._name(name), value, tag_dict=tag_dict or {})

    def gauge(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.gauge(self._name(name), value, tag_dict=tag_dict or {})

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.timer(self._name(name), value, tag_dict=tag_dict or {})

    async def close(self) -> None:
        try:
            await self.client.close()
        except Exception as e:
            logger.warning("Error closing Telegraf client: %s", e)


class NoOpMetricsClient(MetricsClient):
    """Discards everything. Used in tests and when ``METRICS_BACKEND=none``."""

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    async def close(self) -> None:
        pass


def create_metrics_client(
    backend: str,
    host: str = "localhost",
    port: int = 8125,
    prefix: str = "",
    debug: bool = False,
) -> MetricsClient:
    """
    Create the metrics client for ``backend`` (``telegraf`` or ``none``).

    Raises:
        ValueError: If the backend name is not recognised.
    """
    backend = backend.lower()

    if backend == "telegraf":
        telegraf_client = TelegrafStatsdClient(host=host, port=port, debug=debug)
        return TelegrafMetricsClient(telegraf_client, prefix=prefix)

    if backend == "none":
        logger.info("Metrics collection disabled (no-op client)")
        return NoOpMetricsClient()

    raise ValueError(
        f"Invalid metrics backend: {backend}. Supported backends: 'telegraf', 'none'"
    )
