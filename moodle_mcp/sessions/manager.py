"""
会话管理

会话 ID -> (租户, 传输句柄, 最后活跃时间)：
- 所有读写在同一把锁下进行
- 每次路由命中刷新最后活跃时间
- 后台定期清扫超过 TTL 未活跃的会话，关闭其传输
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

import structlog

from moodle_mcp.core.config import settings
from moodle_mcp.tenancy.models import Tenant

logger = structlog.get_logger(__name__)


class ClosableTransport(Protocol):
    async def close(self) -> None:
        ...


@dataclass
class SessionContext:
    """单个会话的上下文"""

    session_id: str
    tenant: Tenant
    transport: Any
    last_activity: float


class SessionManager:
    """会话表（进程内）"""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        sweep_interval_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.SESSION_TTL_SECONDS
        self.sweep_interval_seconds = (
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else settings.SESSION_SWEEP_INTERVAL_SECONDS
        )
        self._clock = clock
        self._sessions: Dict[str, SessionContext] = {}
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    async def create(self, session_id: str, tenant: Tenant, transport: ClosableTransport) -> SessionContext:
        """注册新会话"""
        context = SessionContext(
            session_id=session_id,
            tenant=tenant,
            transport=transport,
            last_activity=self._clock(),
        )
        async with self._lock:
            self._sessions[session_id] = context
        logger.info("session_created", session_id=session_id, active_sessions=len(self._sessions))
        return context

    async def get(self, session_id: str) -> Optional[SessionContext]:
        """查找会话并刷新活跃时间"""
        async with self._lock:
            context = self._sessions.get(session_id)
            if context is not None:
                context.last_activity = self._clock()
            return context

    async def evict(self, session_id: str) -> bool:
        """移除会话（幂等），不关闭传输"""
        async with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("session_evicted", session_id=session_id)
        return removed

    async def sweep(self) -> int:
        """
        清扫过期会话

        Returns:
            清扫的会话数
        """
        now = self._clock()
        async with self._lock:
            stale: List[SessionContext] = [
                c for c in self._sessions.values() if now - c.last_activity > self.ttl_seconds
            ]
            for context in stale:
                del self._sessions[context.session_id]

        # 在锁外关闭，close 回调可能再次调用 evict
        for context in stale:
            try:
                await context.transport.close()
            except Exception as e:
                logger.warning(
                    "session_close_failed",
                    session_id=context.session_id,
                    error=str(e),
                )

        if stale:
            logger.info("sessions_swept", count=len(stale), active_sessions=len(self._sessions))
        return len(stale)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("session_sweep_failed")

    def start(self) -> None:
        """启动后台清扫任务"""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())
            logger.info(
                "session_sweeper_started",
                ttl_seconds=self.ttl_seconds,
                interval_seconds=self.sweep_interval_seconds,
            )

    async def stop(self) -> None:
        """停止后台清扫任务"""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("session_sweeper_stopped")

    async def close_all(self) -> None:
        """关闭全部会话（进程退出时）"""
        async with self._lock:
            contexts = list(self._sessions.values())
            self._sessions.clear()
        for context in contexts:
            try:
                await context.transport.close()
            except Exception as e:
                logger.warning("session_close_failed", session_id=context.session_id, error=str(e))

    @property
    def count(self) -> int:
        return len(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
