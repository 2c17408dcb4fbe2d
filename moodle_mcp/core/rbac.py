"""
角色定义

Moodle 侧角色层级（从高到低）：
- admin: 站点管理员
- manager: 管理者
- editingteacher: 可编辑教师
- teacher: 非编辑教师
- student: 学生
- user: 已认证用户
"""

from enum import Enum
from typing import AbstractSet, Iterable, List


class Role(str, Enum):
    """Moodle 角色（按权限从高到低排列）"""

    ADMIN = "admin"
    MANAGER = "manager"
    EDITINGTEACHER = "editingteacher"
    TEACHER = "teacher"
    STUDENT = "student"
    USER = "user"

    @property
    def rank(self) -> int:
        """权限等级，数值越大权限越高"""
        return len(ROLE_HIERARCHY) - ROLE_HIERARCHY.index(self)


# 角色层级（从高到低）
ROLE_HIERARCHY: List[Role] = list(Role)

ALLOWED_ROLE_VALUES = frozenset(role.value for role in Role)


def is_valid_role(value: object) -> bool:
    return isinstance(value, str) and value in ALLOWED_ROLE_VALUES


def roles_allowed(granted: AbstractSet[Role], allowed: Iterable[Role]) -> bool:
    """租户角色与工具允许角色是否有交集"""
    return not granted.isdisjoint(allowed)


def roles_at_or_above(role: Role) -> List[Role]:
    """给定角色及所有更高权限角色"""
    return [r for r in ROLE_HIERARCHY if r.rank >= role.rank]
