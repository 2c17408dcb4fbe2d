"""
工具 Schema 定义

- ToolSpec: 声明式工具定义（名称、Moodle 函数、输入输出 JSON Schema、允许角色）
- Violation / ValidationOutcome: 校验结果
- ValidationErrorPayload: 返回给调用方（Agent）的结构化校验错误
- ToolCallResult: 工具调用结果（成功 / 失败 + 错误类型）
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from moodle_mcp.core.errors import ErrorKind
from moodle_mcp.core.rbac import Role

JSONSchema = Dict[str, Any]


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class ToolExamples:
    """示例参数，校验失败时回传给调用方用于自我纠正"""

    minimal: Optional[Dict[str, Any]] = None
    typical: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ToolSpec:
    """工具定义"""

    name: str
    moodle_function: str
    description: str
    input_schema: JSONSchema
    allowed_roles: FrozenSet[Role]
    output_schema: Optional[JSONSchema] = None
    method: HttpMethod = HttpMethod.GET
    examples: ToolExamples = field(default_factory=ToolExamples)

    @property
    def allowed_properties(self) -> List[str]:
        return list((self.input_schema.get("properties") or {}).keys())

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（用于工具列表）"""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class Violation:
    """单条校验违规"""

    path: str
    keyword: str
    params: Dict[str, Any] = field(default_factory=dict)
    message: str = ""


@dataclass(frozen=True)
class ValidationOutcome:
    """校验结果"""

    ok: bool
    violations: List[Violation] = field(default_factory=list)


@dataclass
class FieldError:
    """字段级错误"""

    path: str
    issue: str
    expected: Optional[str] = None
    details: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path, "issue": self.issue}
        if self.expected is not None:
            data["expected"] = self.expected
        if self.details is not None:
            data["details"] = self.details
        return data


VALIDATION_ERROR_MESSAGE = (
    "Arguments do not match inputSchema. Fix arguments and retry the same tool call. "
    "Do not add keys outside allowedProperties."
)


@dataclass
class ValidationErrorPayload:
    """结构化校验错误（原样返回给调用方）"""

    tool: str
    allowed_properties: List[str]
    missing_required: List[str]
    unexpected_properties: List[str]
    field_errors: List[FieldError]
    example_minimal: Optional[Dict[str, Any]] = None
    example_typical: Optional[Dict[str, Any]] = None
    message: str = VALIDATION_ERROR_MESSAGE
    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "error": self.kind.value,
            "tool": self.tool,
            "message": self.message,
            "allowedProperties": self.allowed_properties,
            "missingRequired": self.missing_required,
            "unexpectedProperties": self.unexpected_properties,
            "fieldErrors": [e.to_dict() for e in self.field_errors],
        }
        if self.example_minimal is not None:
            data["exampleArgumentsMinimal"] = self.example_minimal
        if self.example_typical is not None:
            data["exampleArgumentsTypical"] = self.example_typical
        return data


@dataclass
class ToolCallResult:
    """工具调用结果"""

    tool_name: str
    success: bool
    output: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    details: Optional[Dict[str, Any]] = None
    duration_ms: Optional[int] = None

    @classmethod
    def ok(cls, tool_name: str, output: Any, duration_ms: Optional[int] = None) -> "ToolCallResult":
        return cls(tool_name=tool_name, success=True, output=output, duration_ms=duration_ms)

    @classmethod
    def fail(
        cls,
        tool_name: str,
        kind: ErrorKind,
        error: str,
        details: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[int] = None,
    ) -> "ToolCallResult":
        return cls(
            tool_name=tool_name,
            success=False,
            error=error,
            error_kind=kind,
            details=details,
            duration_ms=duration_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"tool_name": self.tool_name, "success": True, "output": self.output}
        data: Dict[str, Any] = {
            "tool_name": self.tool_name,
            "success": False,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }
        if self.details is not None:
            data["details"] = self.details
        return data
