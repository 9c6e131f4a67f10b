"""Tests for the health gate and the remote client."""

import httpx
import pytest

from plugin_server import BASE_URL
from pluginkeeper import HealthGate, KeeperMetrics, RemoteClient, RemoteError, ServerUnavailableError


def _gate(handler, metrics=None) -> HealthGate:  # type: ignore[no-untyped-def]
    remote = RemoteClient(BASE_URL, transport=httpx.MockTransport(handler))
    return HealthGate(remote, metrics)


class TestHealthCheck:
    """``check`` reports a boolean and never raises."""

    @pytest.mark.asyncio
    async def test_alive_server_is_healthy(self, keeper):
        assert await keeper.check_health() is True

    @pytest.mark.asyncio
    async def test_dead_server_is_unhealthy(self, keeper, server):
        server.alive = False
        assert await keeper.check_health() is False

    @pytest.mark.asyncio
    async def test_truthy_non_bool_is_unhealthy(self, keeper, server):
        server.alive = "yes"
        assert await keeper.check_health() is False

    @pytest.mark.asyncio
    async def test_http_error_is_unhealthy(self, keeper, server):
        server.status_overrides["/rest/healthcheck"] = 503
        assert await keeper.check_health() is False

    @pytest.mark.asyncio
    async def test_malformed_body_is_unhealthy(self):
        gate = _gate(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
        assert await gate.check() is False

    @pytest.mark.asyncio
    async def test_non_object_body_is_unhealthy(self):
        gate = _gate(lambda request: httpx.Response(200, json=[True]))
        assert await gate.check() is False

    @pytest.mark.asyncio
    async def test_unreachable_server_is_unhealthy(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        gate = _gate(refuse)
        assert await gate.check() is False

    @pytest.mark.asyncio
    async def test_results_are_counted(self):
        metrics = KeeperMetrics()
        gate = _gate(lambda request: httpx.Response(200, json={"alive": True}), metrics)
        await gate.check()
        await gate.check()
        assert metrics.sample("pluginkeeper_health_checks_total", result="healthy") == 2.0


class TestRequireHealthy:
    """``require`` escalates an unhealthy result to an error."""

    @pytest.mark.asyncio
    async def test_require_passes_when_healthy(self):
        gate = _gate(lambda request: httpx.Response(200, json={"alive": True}))
        await gate.require()

    @pytest.mark.asyncio
    async def test_require_raises_when_unhealthy(self):
        gate = _gate(lambda request: httpx.Response(200, json={"alive": False}))
        with pytest.raises(ServerUnavailableError, match="unhealthy"):
            await gate.require()


class TestRemoteClient:
    """URL building and error mapping."""

    def test_url_for_encodes_segments(self):
        remote = RemoteClient(BASE_URL + "/")
        url = remote.url_for("plugin", "my plugin", "version", "a/b", "download")
        assert url == f"{BASE_URL}/rest/plugin/my%20plugin/version/a%2Fb/download"

    @pytest.mark.asyncio
    async def test_get_bytes(self):
        remote = RemoteClient(
            BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"\x00\x01"))
        )
        assert await remote.get_bytes("anything") == b"\x00\x01"

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        remote = RemoteClient(BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        with pytest.raises(RemoteError, match="HTTP 404") as excinfo:
            await remote.get_json("plugin")
        assert excinfo.value.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        remote = RemoteClient(
            BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"{"))
        )
        with pytest.raises(RemoteError, match="Invalid JSON"):
            await remote.get_json("plugin")

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_client(self):
        async with RemoteClient(
            BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        ) as remote:
            assert await remote.get_json("x") == {}
        assert remote._client.is_closed

    @pytest.mark.asyncio
    async def test_external_client_left_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        async with RemoteClient(BASE_URL, client=client):
            pass
        assert not client.is_closed
        await client.aclose()
