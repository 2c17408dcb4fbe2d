"""
Moodle MCP Gateway 主入口

职责:
- 用 MCP Key 向控制面解析租户（Moodle 地址、token、角色）
- 为每个租户会话提供按角色过滤的 Moodle 工具
- 工具参数 / 返回值 JSON Schema 校验
- 会话 TTL 清理
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from moodle_mcp.api import router as api_router
from moodle_mcp.core.config import safe_url, settings
from moodle_mcp.core.logging import setup_logging
from moodle_mcp.mcp.dispatcher import Dispatcher
from moodle_mcp.mcp.transport import StreamableHTTPBinder
from moodle_mcp.moodle.client import get_moodle_client
from moodle_mcp.sessions.manager import SessionManager
from moodle_mcp.tenancy.resolver import get_tenant_resolver
from moodle_mcp.tools.registry import get_tool_registry

logger = structlog.get_logger(__name__)


def log_startup_banner() -> None:
    base_url = f"http://{settings.HOST}:{settings.PORT}" if settings.is_production else f"http://localhost:{settings.PORT}"
    logger.info(
        "gateway_started",
        env=settings.ENV,
        listen=f"{settings.HOST}:{settings.PORT}",
        mcp_endpoint=f"{base_url}/mcp/<MCP_KEY>",
        health=f"{base_url}/health",
        panel_endpoint=safe_url(settings.MCP_KEYS_ENDPOINT),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    setup_logging()

    sessions = SessionManager()
    binder = StreamableHTTPBinder()
    app.state.dispatcher = Dispatcher(
        resolver=get_tenant_resolver(),
        registry=get_tool_registry(),
        client=get_moodle_client(),
        sessions=sessions,
        binder=binder,
    )

    async with binder.run():
        sessions.start()
        log_startup_banner()
        try:
            yield
        finally:
            await sessions.stop()
            await sessions.close_all()
            logger.info("gateway_stopped")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Moodle MCP Gateway",
        description="多租户 MCP 网关，代理 Moodle Web Service",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Mcp-Session-Id"],
    )

    app.include_router(api_router)

    return app


app = create_app()
