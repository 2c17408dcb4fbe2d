"""
MCP Streamable HTTP 传输绑定

每个会话：
- 一个 StreamableHTTPServerTransport（会话 ID 在创建时分配）
- 一个在后台任务组中运行的 MCP Server
Server 退出（客户端 DELETE、被清扫关闭或异常）时触发 on_close 回调
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional, Tuple
from uuid import uuid4

import anyio
import structlog
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.types import Message, Receive, Scope, Send

from moodle_mcp.core.config import settings
from moodle_mcp.mcp.dispatcher import OnAccepted, OnClose
from moodle_mcp.mcp.server import build_server
from moodle_mcp.tools.executor import ToolExecutor

logger = structlog.get_logger(__name__)

ASGIRequest = Tuple[Scope, Receive, Send]


class StreamableHTTPHandle:
    """单个会话的传输句柄"""

    def __init__(self, transport: StreamableHTTPServerTransport):
        self.transport = transport

    @property
    def session_id(self) -> Optional[str]:
        return self.transport.mcp_session_id

    async def dispatch(self, inbound: ASGIRequest, on_accepted: Optional[OnAccepted] = None) -> bool:
        scope, receive, send = inbound
        accepted = False

        async def watching_send(message: Message) -> None:
            nonlocal accepted
            if message["type"] == "http.response.start" and 200 <= message["status"] < 300:
                accepted = True
                if on_accepted is not None:
                    await on_accepted()
            await send(message)

        await self.transport.handle_request(scope, receive, watching_send)
        return accepted

    async def close(self) -> None:
        await self.transport.terminate()


class StreamableHTTPBinder:
    """
    传输绑定器

    必须在 run() 上下文中使用（由应用 lifespan 持有），
    会话的 Server 任务都挂在这个任务组下
    """

    def __init__(
        self,
        json_response: Optional[bool] = None,
        server_factory: Callable[[ToolExecutor], Server] = build_server,
    ):
        self.json_response = settings.MCP_JSON_RESPONSE if json_response is None else json_response
        self._server_factory = server_factory
        self._task_group: Optional[TaskGroup] = None

    @asynccontextmanager
    async def run(self) -> AsyncIterator["StreamableHTTPBinder"]:
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            try:
                yield self
            finally:
                tg.cancel_scope.cancel()
                self._task_group = None

    async def bind(self, executor: ToolExecutor, on_close: OnClose) -> StreamableHTTPHandle:
        if self._task_group is None:
            raise RuntimeError("StreamableHTTPBinder is not running")

        transport = StreamableHTTPServerTransport(
            mcp_session_id=uuid4().hex,
            is_json_response_enabled=self.json_response,
        )
        server = self._server_factory(executor)
        session_id = transport.mcp_session_id

        async def run_server(*, task_status: TaskStatus = anyio.TASK_STATUS_IGNORED) -> None:
            async with transport.connect() as (read_stream, write_stream):
                task_status.started()
                try:
                    await server.run(
                        read_stream,
                        write_stream,
                        server.create_initialization_options(),
                        stateless=False,
                    )
                except Exception:
                    logger.exception("mcp_server_crashed", session_id=session_id)
                finally:
                    with anyio.CancelScope(shield=True):
                        await on_close()
                    logger.info("mcp_transport_closed", session_id=session_id)

        await self._task_group.start(run_server)
        return StreamableHTTPHandle(transport)
