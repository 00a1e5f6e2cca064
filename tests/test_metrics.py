"""
Unit tests for the metrics abstraction in oauth2_admin.app.metrics
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from oauth2_admin.app.metrics import (
    MetricsClient,
    NoOpMetricsClient,
    TelegrafMetricsClient,
    create_metrics_client,
)


class TestMetricsClientInterface:
    def test_interface_is_abstract(self):
        with pytest.raises(TypeError):
            MetricsClient()


class TestNoOpMetricsClient:
    async def test_noop(self):
        client = NoOpMetricsClient()
        client.increment("test.counter", 1, {"tag": "value"})
        client.gauge("test.gauge", 42.5)
        client.timer("test.timer", 0.001)
        await client.connect()
        await client.close()


class TestTelegrafMetricsClient:
    @pytest.fixture
    def telegraf_client(self):
        mock = Mock()
        mock.connect = AsyncMock()
        mock.close = AsyncMock()
        return mock

    def test_prefix_is_applied(self, telegraf_client):
        client = TelegrafMetricsClient(telegraf_client, prefix="oauth2_admin")
        client.increment("server.request.count", 1, {"status": 200})
        client.gauge("queue", 3)
        client.timer("server.request.time", 0.5)

        telegraf_client.increment.assert_called_once_with(
            "oauth2_admin.server.request.count", 1, tag_dict={"status": 200}
        )
        telegraf_client.gauge.assert_called_once_with("oauth2_admin.queue", 3, tag_dict={})
        telegraf_client.timer.assert_called_once_with(
            "oauth2_admin.server.request.time", 0.5, tag_dict={}
        )

    def test_without_prefix(self, telegraf_client):
        TelegrafMetricsClient(telegraf_client).increment("x")
        telegraf_client.increment.assert_called_once_with("x", 1, tag_dict={})

    async def test_connect_and_close(self, telegraf_client):
        client = TelegrafMetricsClient(telegraf_client)
        await client.connect()
        await client.close()
        telegraf_client.connect.assert_awaited_once()
        telegraf_client.close.assert_awaited_once()

    async def test_close_errors_are_logged(self, telegraf_client):
        telegraf_client.close.side_effect = RuntimeError("socket gone")
        await TelegrafMetricsClient(telegraf_client).close()


class TestFactory:
    def test_none(self):
        assert isinstance(create_metrics_client("none"), NoOpMetricsClient)

    def test_telegraf(self):
        with patch("oauth2_admin.app.metrics.TelegrafStatsdClient") as telegraf_cls:
            client = create_metrics_client(
                "TELEGRAF", host="telegraf", port=8125, prefix="svc", debug=True
            )
        assert isinstance(client, TelegrafMetricsClient)
        assert client.prefix == "svc"
        telegraf_cls.assert_called_once_with(host="telegraf", port=8125, debug=True)

    def test_invalid(self):
        with pytest.raises(ValueError):
            create_metrics_client("otel")
