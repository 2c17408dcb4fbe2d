"""
HTTP 端点测试
"""

from typing import Any, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.responses import JSONResponse

from moodle_mcp.core.errors import ErrorKind, GatewayError
from moodle_mcp.main import create_app
from moodle_mcp.mcp.dispatcher import Dispatcher
from moodle_mcp.sessions.manager import SessionManager

from helpers import make_tenant


class RespondingHandle:
    """把请求记录下来并返回固定 JSON 的传输句柄"""

    def __init__(self, session_id: Optional[str]):
        self.session_id = session_id
        self.dispatched: List[Any] = []

    async def dispatch(self, inbound: Any, on_accepted=None) -> bool:
        self.dispatched.append(inbound)
        scope, receive, send = inbound
        if on_accepted is not None:
            await on_accepted()
        await JSONResponse({"ok": True}, headers={"Mcp-Session-Id": self.session_id})(scope, receive, send)
        return True

    async def close(self) -> None:
        pass


class RespondingBinder:
    def __init__(self):
        self.handles: List[RespondingHandle] = []

    async def bind(self, executor, on_close) -> RespondingHandle:
        handle = RespondingHandle("sess-1")
        self.handles.append(handle)
        return handle


def _resolver(error: Optional[GatewayError] = None) -> AsyncMock:
    resolver = AsyncMock()
    if error is not None:
        resolver.resolve = AsyncMock(side_effect=error)
    else:
        resolver.resolve = AsyncMock(return_value=make_tenant())
    return resolver


def _app(registry, resolver, binder=None):
    app = create_app()
    app.state.dispatcher = Dispatcher(
        resolver=resolver,
        registry=registry,
        client=AsyncMock(),
        sessions=SessionManager(ttl_seconds=60, sweep_interval_seconds=60),
        binder=binder or RespondingBinder(),
    )
    return app


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


class TestHealth:
    """健康检查测试"""

    @pytest.mark.asyncio
    async def test_health(self, registry):
        """测试健康检查"""
        async with _client(_app(registry, _resolver())) as client:
            response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["active_sessions"] == 0
        assert data["tools"] == len(registry)


class TestMcpEndpoint:
    """MCP 端点测试"""

    @pytest.mark.asyncio
    async def test_unknown_session(self, registry):
        """测试未知会话返回 404"""
        async with _client(_app(registry, _resolver())) as client:
            response = await client.post("/mcp/any-key", headers={"Mcp-Session-Id": "nope"}, json={})

        assert response.status_code == 404
        assert response.text == "Unknown Mcp-Session-Id"

    @pytest.mark.asyncio
    async def test_bad_key(self, registry):
        """测试 MCP Key 不存在"""
        error = GatewayError("MCP Key not found", ErrorKind.CREDENTIAL_NOT_FOUND)
        async with _client(_app(registry, _resolver(error=error))) as client:
            response = await client.post("/mcp/bad-key", json={})

        assert response.status_code == 404
        assert response.text == "MCP Key not found"

    @pytest.mark.asyncio
    async def test_forbidden_key(self, registry):
        """测试 MCP Key 已吊销"""
        error = GatewayError("MCP Key forbidden", ErrorKind.CREDENTIAL_FORBIDDEN)
        async with _client(_app(registry, _resolver(error=error))) as client:
            response = await client.post("/mcp/revoked", json={})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_bootstrap_dispatches_raw_request(self, registry):
        """测试新会话请求交给传输处理"""
        binder = RespondingBinder()
        app = _app(registry, _resolver(), binder)

        async with _client(app) as client:
            response = await client.post("/mcp/good-key", json={})

        assert response.status_code == 200
        assert response.headers["mcp-session-id"] == "sess-1"
        scope, _receive, _send = binder.handles[0].dispatched[0]
        assert scope["path"] == "/mcp/good-key"
        assert "sess-1" in app.state.dispatcher.sessions
