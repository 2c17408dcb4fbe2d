"""API 路由模块"""

from fastapi import APIRouter

from moodle_mcp.api import health, mcp

router = APIRouter()

router.include_router(mcp.router, tags=["MCP"])
router.include_router(health.router, tags=["健康检查"])
