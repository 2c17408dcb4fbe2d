"""
测试配置和 fixtures
"""

import pytest

from moodle_mcp.core.rbac import Role
from moodle_mcp.tenancy.models import Tenant
from moodle_mcp.tools.registry import ToolRegistry, get_tool_registry

from helpers import make_tenant


@pytest.fixture
def registry() -> ToolRegistry:
    return get_tool_registry()


@pytest.fixture
def admin_tenant() -> Tenant:
    return make_tenant(Role.ADMIN)


@pytest.fixture
def student_tenant() -> Tenant:
    return make_tenant(Role.STUDENT)
