"""
MCP 端点

ALL /mcp/{mcp_key}
- 带 Mcp-Session-Id：路由到已有会话（未知会话返回 404）
- 不带：用路径中的 MCP Key 解析租户并创建新会话
"""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.types import Receive, Scope, Send

from moodle_mcp.core.errors import GatewayError
from moodle_mcp.mcp.dispatcher import Dispatcher

router = APIRouter()
logger = structlog.get_logger(__name__)

SESSION_HEADER = "mcp-session-id"


class TransportResponse(Response):
    """把原始 ASGI 请求交给 MCP 传输处理（响应由传输直接写出）"""

    def __init__(self, dispatcher: Dispatcher, mcp_key: str, session_id: str = ""):
        super().__init__()
        self.dispatcher = dispatcher
        self.mcp_key = mcp_key
        self.session_id = session_id

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        started = False

        async def tracking_send(message: dict) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        inbound = (scope, receive, tracking_send)
        try:
            if self.session_id:
                await self.dispatcher.route(self.session_id, inbound)
            else:
                await self.dispatcher.bootstrap(self.mcp_key, inbound)
        except GatewayError as e:
            logger.warning("mcp_request_rejected", error_kind=e.kind.value, status_code=e.status_code)
            if not started:
                await PlainTextResponse(e.message, status_code=e.status_code)(scope, receive, send)
        except Exception as e:
            logger.exception("mcp_request_failed")
            if not started:
                await PlainTextResponse(str(e) or "Internal Server Error", status_code=500)(scope, receive, send)


@router.api_route("/mcp/{mcp_key}", methods=["GET", "POST", "DELETE"], include_in_schema=False)
async def mcp_endpoint(mcp_key: str, request: Request) -> Response:
    """MCP Streamable HTTP 入口"""
    return TransportResponse(
        request.app.state.dispatcher,
        mcp_key=mcp_key.strip(),
        session_id=request.headers.get(SESSION_HEADER, ""),
    )
