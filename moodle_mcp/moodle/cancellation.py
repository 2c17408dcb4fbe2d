"""
取消令牌

调用方传入的取消信号与客户端内部的超时计时器统一为同一抽象：
每次调用只存在一个有效的取消源。
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class CancellationToken:
    """可等待的取消信号"""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    async def wait(self) -> None:
        await self._event.wait()


@asynccontextmanager
async def cancellation_scope(
    token: Optional[CancellationToken],
    timeout_ms: Optional[int],
) -> AsyncIterator[CancellationToken]:
    """
    获取本次调用使用的取消令牌

    调用方提供令牌时直接使用；否则创建内部令牌并在 timeout_ms 后触发。
    计时器在退出作用域时（成功、失败、异常）一律释放。
    """
    if token is not None:
        yield token
        return

    own = CancellationToken()
    timer: Optional[asyncio.TimerHandle] = None
    if timeout_ms and timeout_ms > 0:
        loop = asyncio.get_running_loop()
        timer = loop.call_later(timeout_ms / 1000, own.cancel, "timeout")
    try:
        yield own
    finally:
        if timer is not None:
            timer.cancel()
