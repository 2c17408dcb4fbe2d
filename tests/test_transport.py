"""
Streamable HTTP 传输测试

用真实的 StreamableHTTPBinder 走一遍会话引导：
1. 非初始化的首个请求被传输拒绝（400），不留下会话
2. 初始化请求被接受，会话登记并可路由
"""

import json
from typing import Any, Dict, List
from unittest.mock import AsyncMock

import anyio
import pytest

from moodle_mcp.mcp.dispatcher import Dispatcher
from moodle_mcp.mcp.transport import StreamableHTTPBinder
from moodle_mcp.sessions.manager import SessionManager

from helpers import make_tenant


class RecordingSend:
    """收集 ASGI 响应消息"""

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []

    async def __call__(self, message: Dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def status(self) -> int:
        return next(m["status"] for m in self.messages if m["type"] == "http.response.start")

    @property
    def headers(self) -> Dict[str, str]:
        start = next(m for m in self.messages if m["type"] == "http.response.start")
        return {k.decode().lower(): v.decode() for k, v in start.get("headers", [])}


def _inbound(body: Dict[str, Any]):
    payload = json.dumps(body).encode()
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/mcp/good-key",
        "raw_path": b"/mcp/good-key",
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"content-type", b"application/json"),
            (b"accept", b"application/json, text/event-stream"),
        ],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 1234),
    }
    sent = False
    never = anyio.Event()

    async def receive() -> Dict[str, Any]:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": payload, "more_body": False}
        await never.wait()
        return {"type": "http.disconnect"}

    send = RecordingSend()
    return (scope, receive, send), send


def _dispatcher(registry, binder: StreamableHTTPBinder) -> Dispatcher:
    resolver = AsyncMock()
    resolver.resolve = AsyncMock(return_value=make_tenant())
    return Dispatcher(
        resolver=resolver,
        registry=registry,
        client=AsyncMock(),
        sessions=SessionManager(ttl_seconds=60, sweep_interval_seconds=60),
        binder=binder,
    )


class TestStreamableHTTPBootstrap:
    """会话引导测试"""

    @pytest.mark.asyncio
    async def test_non_initialize_first_request_leaves_no_session(self, registry):
        """测试未携带会话 ID 的 tools/list 被拒绝且不登记会话"""
        binder = StreamableHTTPBinder(json_response=True)
        async with binder.run():
            dispatcher = _dispatcher(registry, binder)
            inbound, send = _inbound({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

            session_id = await dispatcher.bootstrap("good-key", inbound)

            assert send.status == 400
            assert session_id is None
            assert len(dispatcher.sessions) == 0

    @pytest.mark.asyncio
    async def test_initialize_registers_session(self, registry):
        """测试初始化握手成功后登记会话"""
        binder = StreamableHTTPBinder(json_response=True)
        async with binder.run():
            dispatcher = _dispatcher(registry, binder)
            inbound, send = _inbound({
                "jsonrpc": "2.0",
                "id": 1,
                "method": "initialize",
                "params": {
                    "protocolVersion": "2025-03-26",
                    "capabilities": {},
                    "clientInfo": {"name": "test-client", "version": "1.0"},
                },
            })

            session_id = await dispatcher.bootstrap("good-key", inbound)

            assert send.status == 200
            assert session_id is not None
            assert send.headers["mcp-session-id"] == session_id
            assert session_id in dispatcher.sessions

            await dispatcher.sessions.close_all()
            assert len(dispatcher.sessions) == 0
