"""
租户模块

MCP Key -> Tenant（Moodle 地址、token、角色）
"""

from moodle_mcp.tenancy.models import Tenant
from moodle_mcp.tenancy.resolver import TenantResolver, get_tenant_resolver

__all__ = ["Tenant", "TenantResolver", "get_tenant_resolver"]
