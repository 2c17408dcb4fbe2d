"""
工具执行器

绑定单个租户，按以下顺序执行一次工具调用：
1. 查找工具（UNKNOWN_TOOL）
2. 角色检查（ROLE_FORBIDDEN），每次调用都检查
3. 输入校验（VALIDATION_ERROR），失败时不发起远程调用
4. 调用 Moodle
5. 输出校验（INVALID_UPSTREAM_RESPONSE）
"""

import time
from typing import Any, Dict, List, Mapping, Optional

import structlog

from moodle_mcp.core.errors import ErrorKind
from moodle_mcp.core.rbac import roles_allowed
from moodle_mcp.moodle.cancellation import CancellationToken
from moodle_mcp.moodle.client import MoodleClient
from moodle_mcp.tenancy.models import Tenant
from moodle_mcp.tools.registry import ToolRegistry
from moodle_mcp.tools.schemas import ToolCallResult, ToolSpec
from moodle_mcp.tools.validation import SchemaValidator, format_validation_error, get_schema_validator

logger = structlog.get_logger(__name__)


class ToolExecutor:
    """租户范围内的工具执行器"""

    def __init__(
        self,
        tenant: Tenant,
        registry: ToolRegistry,
        client: MoodleClient,
        validator: Optional[SchemaValidator] = None,
    ):
        self.tenant = tenant
        self.registry = registry
        self.client = client
        self.validator = validator or get_schema_validator()

    def list_tools(self) -> List[ToolSpec]:
        """当前租户角色可见的工具"""
        return self.registry.list_for_roles(self.tenant.roles)

    async def invoke(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> ToolCallResult:
        """
        调用工具

        Args:
            name: 工具名
            arguments: 调用参数（None 视为空对象）
            cancellation: 调用方取消令牌

        Returns:
            ToolCallResult
        """
        start_time = time.monotonic()
        log = logger.bind(tool=name)
        args: Dict[str, Any] = dict(arguments) if arguments is not None else {}

        def elapsed() -> int:
            return int((time.monotonic() - start_time) * 1000)

        tool = self.registry.get(name)
        if tool is None:
            log.warning("tool_not_found")
            return ToolCallResult.fail(name, ErrorKind.UNKNOWN_TOOL, f"Unknown tool: {name}")

        if not roles_allowed(self.tenant.roles, tool.allowed_roles):
            log.warning(
                "tool_role_forbidden",
                roles=sorted(r.value for r in self.tenant.roles),
                allowed_roles=sorted(r.value for r in tool.allowed_roles),
            )
            return ToolCallResult.fail(
                name,
                ErrorKind.ROLE_FORBIDDEN,
                f"Tool {name} is not allowed for roles: "
                f"{', '.join(sorted(r.value for r in self.tenant.roles))}",
            )

        outcome = self.validator.validate(f"{name}:input", tool.input_schema, args)
        if not outcome.ok:
            payload = format_validation_error(tool, outcome.violations).to_dict()
            log.info("tool_input_invalid", violations=len(outcome.violations))
            return ToolCallResult.fail(
                name,
                ErrorKind.VALIDATION_ERROR,
                payload["message"],
                details=payload,
                duration_ms=elapsed(),
            )

        result = await self.client.call(
            self.tenant.moodle_url,
            self.tenant.moodle_token,
            tool.moodle_function,
            args,
            method=tool.method,
            cancellation=cancellation,
        )
        if not result.success:
            return ToolCallResult.fail(
                name,
                result.error_kind or ErrorKind.REMOTE_TRANSPORT_ERROR,
                result.error or "Moodle call failed",
                details=result.details or None,
                duration_ms=elapsed(),
            )

        if tool.output_schema is not None:
            outcome = self.validator.validate(f"{name}:output", tool.output_schema, result.data)
            if not outcome.ok:
                payload = format_validation_error(tool, outcome.violations, direction="output").to_dict()
                log.error("tool_output_invalid", violations=len(outcome.violations))
                return ToolCallResult.fail(
                    name,
                    ErrorKind.INVALID_UPSTREAM_RESPONSE,
                    payload["message"],
                    details=payload,
                    duration_ms=elapsed(),
                )

        log.info("tool_call_success", latency_ms=elapsed())
        return ToolCallResult.ok(name, result.data, duration_ms=elapsed())
