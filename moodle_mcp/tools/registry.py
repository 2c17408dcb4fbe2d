"""
工具注册表

启动时从静态目录加载，之后只读：
- 工具名全局唯一（重复注册为启动期致命错误）
- 每个工具的 allowed_roles 必须是角色枚举的非空子集
- schema 本身不合法同样在启动期失败
"""

from functools import lru_cache
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from moodle_mcp.core.rbac import Role, roles_allowed
from moodle_mcp.tools.catalogue import ALL_TOOLS
from moodle_mcp.tools.schemas import ToolSpec
from moodle_mcp.tools.validation import SchemaValidator


class DuplicateToolError(ValueError):
    """重复的工具名"""


class ToolRegistry:
    """工具注册表（不可变）"""

    def __init__(self, tools: Iterable[ToolSpec]):
        tools_by_name: Dict[str, ToolSpec] = {}
        for tool in tools:
            if tool.name in tools_by_name:
                raise DuplicateToolError(f"Duplicate tool name: {tool.name}")
            self._check_tool(tool)
            tools_by_name[tool.name] = tool
        self._tools: Mapping[str, ToolSpec] = MappingProxyType(tools_by_name)

    @staticmethod
    def _check_tool(tool: ToolSpec) -> None:
        if not tool.allowed_roles:
            raise ValueError(f"Tool {tool.name} must allow at least one role")
        for role in tool.allowed_roles:
            if not isinstance(role, Role):
                raise ValueError(f"Tool {tool.name} has an unknown role: {role!r}")
        SchemaValidator.check_schema(tool.input_schema)
        if tool.output_schema is not None:
            SchemaValidator.check_schema(tool.output_schema)

    def get(self, name: str) -> Optional[ToolSpec]:
        """获取工具定义"""
        return self._tools.get(name)

    def roles_for(self, name: str) -> Optional[FrozenSet[Role]]:
        """获取工具允许的角色"""
        tool = self._tools.get(name)
        return tool.allowed_roles if tool else None

    def list_all(self) -> List[ToolSpec]:
        """列出所有工具"""
        return list(self._tools.values())

    def list_for_roles(self, roles: FrozenSet[Role]) -> List[ToolSpec]:
        """列出给定角色可调用的工具"""
        return [t for t in self._tools.values() if roles_allowed(roles, t.allowed_roles)]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


@lru_cache
def get_tool_registry() -> ToolRegistry:
    """获取内置工具注册表单例"""
    return ToolRegistry(ALL_TOOLS)
