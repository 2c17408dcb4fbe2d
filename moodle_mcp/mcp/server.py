"""
MCP Server 构建

每个会话一个 Server 实例，工具列表与调用都经由绑定租户的 ToolExecutor
"""

import json
from typing import Any, Dict, List, Optional

import mcp.types as types
import structlog
from mcp.server.lowlevel import Server

from moodle_mcp.core.config import settings
from moodle_mcp.tools.executor import ToolExecutor
from moodle_mcp.tools.schemas import ToolCallResult

logger = structlog.get_logger(__name__)


class ToolCallFailed(Exception):
    """工具调用失败，消息体为 JSON 错误对象（SDK 会转换为 isError 结果）"""

    def __init__(self, result: ToolCallResult):
        self.result = result
        super().__init__(json.dumps(error_body(result), ensure_ascii=False))


def error_body(result: ToolCallResult) -> Dict[str, Any]:
    """失败结果 -> 返回给调用方的错误对象"""
    # 校验类错误直接返回结构化载荷
    if isinstance(result.details, dict) and "fieldErrors" in result.details:
        return result.details
    body: Dict[str, Any] = {
        "error": result.error_kind.value if result.error_kind else "ERROR",
        "message": result.error,
    }
    if result.details:
        body["details"] = result.details
    return body


def render_output(output: Any) -> str:
    if isinstance(output, str):
        return output
    return json.dumps(output, ensure_ascii=False, indent=2)


def build_server(executor: ToolExecutor, name: Optional[str] = None) -> Server:
    """为租户构建 MCP Server"""
    server: Server = Server(name or settings.MCP_SERVER_NAME, version=settings.APP_VERSION)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema,
            )
            for tool in executor.list_tools()
        ]

    # 参数校验由执行器完成，以返回结构化错误
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[types.TextContent]:
        result = await executor.invoke(name, arguments)
        if not result.success:
            raise ToolCallFailed(result)
        return [types.TextContent(type="text", text=render_output(result.output))]

    return server
