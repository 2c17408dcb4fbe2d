"""
会话管理测试

验证场景：
1. 创建 / 查找 / 移除
2. 查找刷新活跃时间
3. TTL 清扫关闭传输，忽略关闭错误
4. 后台清扫任务启停
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from moodle_mcp.core.rbac import Role
from moodle_mcp.sessions.manager import SessionManager

from helpers import make_tenant


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _transport() -> AsyncMock:
    transport = AsyncMock()
    transport.close = AsyncMock()
    return transport


class TestSessionManager:
    """会话表测试"""

    def setup_method(self):
        self.clock = FakeClock()
        self.manager = SessionManager(ttl_seconds=60, sweep_interval_seconds=10, clock=self.clock)
        self.tenant = make_tenant(Role.TEACHER)

    @pytest.mark.asyncio
    async def test_create_and_get(self):
        """测试创建与查找"""
        await self.manager.create("s1", self.tenant, _transport())

        first = await self.manager.get("s1")
        second = await self.manager.get("s1")

        assert first is second
        assert first.tenant == self.tenant
        assert len(self.manager) == 1

    @pytest.mark.asyncio
    async def test_get_unknown(self):
        """测试未知会话"""
        assert await self.manager.get("missing") is None

    @pytest.mark.asyncio
    async def test_get_refreshes_activity(self):
        """测试查找刷新活跃时间"""
        await self.manager.create("s1", self.tenant, _transport())
        self.clock.advance(50)

        context = await self.manager.get("s1")

        assert context.last_activity == self.clock.now

    @pytest.mark.asyncio
    async def test_refreshed_session_survives_sweep(self):
        """测试 TTL 内被查找过的会话不会被清扫"""
        transport = _transport()
        await self.manager.create("s1", self.tenant, transport)
        self.clock.advance(50)
        await self.manager.get("s1")
        self.clock.advance(30)

        swept = await self.manager.sweep()

        assert swept == 0
        assert "s1" in self.manager
        transport.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_evict_idempotent(self):
        """测试重复移除"""
        await self.manager.create("s1", self.tenant, _transport())

        assert await self.manager.evict("s1") is True
        assert await self.manager.evict("s1") is False
        assert "s1" not in self.manager

    @pytest.mark.asyncio
    async def test_sweep_evicts_stale(self):
        """测试清扫过期会话"""
        stale_transport = _transport()
        fresh_transport = _transport()
        await self.manager.create("stale", self.tenant, stale_transport)
        await self.manager.create("fresh", self.tenant, fresh_transport)

        self.clock.advance(45)
        await self.manager.get("fresh")
        self.clock.advance(30)

        swept = await self.manager.sweep()

        assert swept == 1
        assert "stale" not in self.manager
        assert "fresh" in self.manager
        stale_transport.close.assert_awaited_once()
        fresh_transport.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sweep_ignores_close_errors(self):
        """测试关闭失败不影响清扫"""
        broken = _transport()
        broken.close.side_effect = RuntimeError("already closed")
        other = _transport()
        await self.manager.create("a", self.tenant, broken)
        await self.manager.create("b", self.tenant, other)
        self.clock.advance(61)

        swept = await self.manager.sweep()

        assert swept == 2
        assert len(self.manager) == 0
        other.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sweep_allows_evict_from_close(self):
        """测试关闭回调中再次移除不会死锁"""
        transport = _transport()
        manager = self.manager

        async def close():
            await manager.evict("s1")

        transport.close.side_effect = close
        await manager.create("s1", self.tenant, transport)
        self.clock.advance(120)

        assert await asyncio.wait_for(manager.sweep(), timeout=1) == 1

    @pytest.mark.asyncio
    async def test_start_stop(self):
        """测试后台清扫任务"""
        manager = SessionManager(ttl_seconds=0, sweep_interval_seconds=0.01, clock=self.clock)
        transport = _transport()
        await manager.create("s1", self.tenant, transport)
        self.clock.advance(1)

        manager.start()
        await asyncio.sleep(0.05)
        await manager.stop()

        assert len(manager) == 0
        transport.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_all(self):
        """测试关闭全部会话"""
        transport = _transport()
        await self.manager.create("s1", self.tenant, transport)

        await self.manager.close_all()

        assert len(self.manager) == 0
        transport.close.assert_awaited_once()
