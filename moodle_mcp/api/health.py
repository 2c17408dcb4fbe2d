"""健康检查"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from moodle_mcp.core.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """健康检查响应"""

    status: str
    service: str
    version: str
    active_sessions: int
    tools: int
    ts: str


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """健康检查端点"""
    dispatcher = request.app.state.dispatcher
    return HealthResponse(
        status="healthy",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        active_sessions=len(dispatcher.sessions),
        tools=len(dispatcher.registry),
        ts=datetime.now(timezone.utc).isoformat(),
    )
