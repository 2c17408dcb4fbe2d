"""
工具模块

- 声明式工具目录（每个工具对应一个 Moodle Web Service 函数）
- 注册表：按名称查找、按角色筛选
- 输入 / 输出 JSON Schema 校验与结构化错误
"""

from moodle_mcp.tools.registry import DuplicateToolError, ToolRegistry, get_tool_registry
from moodle_mcp.tools.schemas import ToolCallResult, ToolExamples, ToolSpec

__all__ = [
    "DuplicateToolError",
    "ToolRegistry",
    "get_tool_registry",
    "ToolCallResult",
    "ToolExamples",
    "ToolSpec",
]
