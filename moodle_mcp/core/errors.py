"""
错误分类

网关内所有失败都归入 ErrorKind 中的一种，调用方按 kind 分支，
不需要匹配错误消息文本。
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """错误类型"""

    # 控制面 / 租户解析
    CREDENTIAL_NOT_FOUND = "CREDENTIAL_NOT_FOUND"
    CREDENTIAL_FORBIDDEN = "CREDENTIAL_FORBIDDEN"
    CONTROL_PLANE_UPSTREAM_ERROR = "CONTROL_PLANE_UPSTREAM_ERROR"
    INVALID_TENANT_DATA = "INVALID_TENANT_DATA"

    # 会话路由
    UNKNOWN_SESSION = "UNKNOWN_SESSION"

    # 工具调用
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    ROLE_FORBIDDEN = "ROLE_FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_UPSTREAM_RESPONSE = "INVALID_UPSTREAM_RESPONSE"

    # Moodle 远程调用
    REMOTE_TRANSPORT_ERROR = "REMOTE_TRANSPORT_ERROR"
    REMOTE_APPLICATION_ERROR = "REMOTE_APPLICATION_ERROR"
    REMOTE_TIMEOUT_OR_CANCELLED = "REMOTE_TIMEOUT_OR_CANCELLED"
    INVALID_REMOTE_JSON = "INVALID_REMOTE_JSON"


# 各错误类型对应的 HTTP 状态码（用于会话建立 / 路由阶段）
HTTP_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.CREDENTIAL_NOT_FOUND: 404,
    ErrorKind.CREDENTIAL_FORBIDDEN: 403,
    ErrorKind.CONTROL_PLANE_UPSTREAM_ERROR: 502,
    ErrorKind.INVALID_TENANT_DATA: 502,
    ErrorKind.UNKNOWN_SESSION: 404,
    ErrorKind.UNKNOWN_TOOL: 404,
    ErrorKind.ROLE_FORBIDDEN: 403,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.INVALID_UPSTREAM_RESPONSE: 502,
    ErrorKind.REMOTE_TRANSPORT_ERROR: 502,
    ErrorKind.REMOTE_APPLICATION_ERROR: 502,
    ErrorKind.REMOTE_TIMEOUT_OR_CANCELLED: 504,
    ErrorKind.INVALID_REMOTE_JSON: 502,
}


class GatewayError(Exception):
    """网关错误（带错误类型与 HTTP 状态码）"""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.kind = kind
        self.status_code = status_code or HTTP_STATUS_BY_KIND.get(kind, 500)
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"error": self.kind.value, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data
