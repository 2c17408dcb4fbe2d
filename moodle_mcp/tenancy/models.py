"""
租户模型
"""

from dataclasses import dataclass
from typing import FrozenSet

from moodle_mcp.core.rbac import Role


@dataclass(frozen=True)
class Tenant:
    """
    已解析的租户

    由控制面根据 MCP Key 返回；会话期间只读，不持久化
    """

    moodle_url: str
    moodle_token: str
    roles: FrozenSet[Role]

    def __repr__(self) -> str:
        # token 不出现在日志 / repr 中
        roles = ",".join(sorted(r.value for r in self.roles))
        return f"Tenant(moodle_url={self.moodle_url!r}, roles=[{roles}])"
