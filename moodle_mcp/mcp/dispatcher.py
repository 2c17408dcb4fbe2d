"""
调度核心

两个入口：
- bootstrap: 无会话 ID 时，用 MCP Key 解析租户，绑定新的传输并登记会话
- route: 有会话 ID 时，把请求交给已绑定的传输

传输层（MCP Streamable HTTP）通过 TransportBinder / TransportHandle 协议接入，
便于测试时替换。
"""

from typing import Any, Awaitable, Callable, Optional, Protocol

import structlog

from moodle_mcp.core.errors import ErrorKind, GatewayError
from moodle_mcp.moodle.client import MoodleClient
from moodle_mcp.sessions.manager import SessionManager
from moodle_mcp.tenancy.resolver import TenantResolver
from moodle_mcp.tools.executor import ToolExecutor
from moodle_mcp.tools.registry import ToolRegistry
from moodle_mcp.tools.validation import SchemaValidator, get_schema_validator

logger = structlog.get_logger(__name__)

OnClose = Callable[[], Awaitable[None]]
OnAccepted = Callable[[], Awaitable[None]]


class TransportHandle(Protocol):
    """已绑定执行上下文的传输句柄"""

    @property
    def session_id(self) -> Optional[str]:
        ...

    async def dispatch(self, inbound: Any, on_accepted: Optional[OnAccepted] = None) -> bool:
        """
        处理一次请求

        on_accepted 在 2xx 响应开始写出之前调用；返回值表示请求是否被接受
        """
        ...

    async def close(self) -> None:
        ...


class TransportBinder(Protocol):
    """为执行器创建传输绑定"""

    async def bind(self, executor: ToolExecutor, on_close: OnClose) -> TransportHandle:
        ...


class Dispatcher:
    """MCP 请求调度"""

    def __init__(
        self,
        resolver: TenantResolver,
        registry: ToolRegistry,
        client: MoodleClient,
        sessions: SessionManager,
        binder: TransportBinder,
        validator: Optional[SchemaValidator] = None,
    ):
        self.resolver = resolver
        self.registry = registry
        self.client = client
        self.sessions = sessions
        self.binder = binder
        # 所有会话共享同一个编译缓存
        self.validator = validator or get_schema_validator()

    async def bootstrap(self, mcp_key: str, inbound: Any) -> Optional[str]:
        """
        新会话：解析租户 -> 绑定传输 -> 处理首个请求 -> 登记会话

        只有传输接受了首个请求（初始化握手成功）才登记会话；
        否则关闭传输，不留下会话。

        Args:
            mcp_key: 调用方凭证
            inbound: 传给传输层的原始请求

        Returns:
            登记的会话 ID（未登记时为 None）

        Raises:
            GatewayError: 租户解析失败（此时不会创建会话）
        """
        if not mcp_key:
            raise GatewayError("Missing MCP key", ErrorKind.CREDENTIAL_NOT_FOUND, status_code=400)

        tenant = await self.resolver.resolve(mcp_key)
        executor = ToolExecutor(tenant, self.registry, self.client, self.validator)

        session_ref: dict = {}

        async def on_close() -> None:
            session_id = session_ref.get("id")
            if session_id:
                await self.sessions.evict(session_id)

        handle = await self.binder.bind(executor, on_close)
        session_id = handle.session_id

        async def register() -> None:
            # 在响应头写出前登记，客户端拿到会话 ID 时会话已可路由
            session_ref["id"] = session_id
            await self.sessions.create(session_id, tenant, handle)
            logger.info(
                "session_bootstrapped",
                session_id=session_id,
                tools=len(executor.list_tools()),
            )

        accepted = False
        try:
            accepted = await handle.dispatch(inbound, on_accepted=register if session_id else None)
        finally:
            if not (accepted and session_id):
                logger.info("session_not_established", accepted=accepted, has_session_id=bool(session_id))
                await handle.close()

        return session_id if "id" in session_ref else None

    async def route(self, session_id: str, inbound: Any) -> None:
        """
        已有会话：查找并转发

        Raises:
            GatewayError: UNKNOWN_SESSION
        """
        context = await self.sessions.get(session_id)
        if context is None:
            logger.info("session_unknown", session_id=session_id)
            raise GatewayError("Unknown Mcp-Session-Id", ErrorKind.UNKNOWN_SESSION)
        await context.transport.dispatch(inbound)
