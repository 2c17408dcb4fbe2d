"""
租户解析

向控制面提交 MCP Key，换取租户信息（Moodle 地址、token、角色）：
- 200: 校验字段，返回 Tenant
- 404: Key 不存在
- 403: Key 已吊销 / 暂停 / 过期
- 其他: 上游错误
"""

from functools import lru_cache
from typing import Any, List, Optional

import httpx
import structlog

from moodle_mcp.core.config import safe_url, settings
from moodle_mcp.core.errors import ErrorKind, GatewayError
from moodle_mcp.core.rbac import Role, is_valid_role
from moodle_mcp.tenancy.models import Tenant

logger = structlog.get_logger(__name__)


class TenantResolver:
    """控制面租户解析器"""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        excerpt_max_length: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.MCP_KEYS_ENDPOINT
        self.timeout = timeout or settings.CONTROL_PLANE_TIMEOUT_SECONDS
        self.user_agent = user_agent or settings.CONTROL_PLANE_USER_AGENT
        self.excerpt_max_length = excerpt_max_length or settings.MOODLE_ERROR_SNIPPET_MAX_LENGTH
        self._transport = transport

    async def resolve(self, mcp_key: str) -> Tenant:
        """
        解析 MCP Key

        Args:
            mcp_key: 调用方凭证（不透明字符串）

        Returns:
            Tenant

        Raises:
            GatewayError: CREDENTIAL_NOT_FOUND / CREDENTIAL_FORBIDDEN /
                CONTROL_PLANE_UPSTREAM_ERROR / INVALID_TENANT_DATA
        """
        log = logger.bind(endpoint=safe_url(self.endpoint))

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    json={"mcpKey": mcp_key},
                    headers={
                        "Content-Type": "application/json",
                        "User-Agent": self.user_agent,
                    },
                )
        except httpx.HTTPError as e:
            log.error("control_plane_request_error", error_type=type(e).__name__, error=str(e))
            raise GatewayError(
                f"MCP Keys endpoint unreachable: {type(e).__name__}",
                ErrorKind.CONTROL_PLANE_UPSTREAM_ERROR,
            ) from e

        if response.status_code == 200:
            tenant = self._parse_tenant(response)
            log.info("tenant_resolved", moodle_url=safe_url(tenant.moodle_url), roles=sorted(r.value for r in tenant.roles))
            return tenant

        if response.status_code == 404:
            log.warning("mcp_key_not_found")
            raise GatewayError("MCP Key not found", ErrorKind.CREDENTIAL_NOT_FOUND)

        if response.status_code == 403:
            log.warning("mcp_key_forbidden")
            raise GatewayError("MCP Key forbidden", ErrorKind.CREDENTIAL_FORBIDDEN)

        excerpt = response.text[: self.excerpt_max_length] or response.reason_phrase
        log.error("control_plane_error", status_code=response.status_code, body=excerpt)
        raise GatewayError(
            f"MCP Keys endpoint error ({response.status_code}): {excerpt}",
            ErrorKind.CONTROL_PLANE_UPSTREAM_ERROR,
            details={"status": response.status_code},
        )

    def _parse_tenant(self, response: httpx.Response) -> Tenant:
        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError(
                "Invalid JSON from MCP Keys endpoint",
                ErrorKind.CONTROL_PLANE_UPSTREAM_ERROR,
            ) from e

        if not isinstance(data, dict):
            raise GatewayError(
                "Invalid response from MCP Keys endpoint (expected an object)",
                ErrorKind.INVALID_TENANT_DATA,
            )

        moodle_url = data.get("moodleUrl")
        moodle_token = data.get("moodleToken")
        roles = _normalize_roles(data.get("moodleRoles"))

        if not moodle_url or not moodle_token or roles is None:
            raise GatewayError(
                "Invalid response from MCP Keys endpoint (missing moodleUrl/moodleToken/moodleRoles)",
                ErrorKind.INVALID_TENANT_DATA,
            )
        if not isinstance(moodle_url, str) or not isinstance(moodle_token, str):
            raise GatewayError(
                "Invalid response from MCP Keys endpoint (moodleUrl/moodleToken must be strings)",
                ErrorKind.INVALID_TENANT_DATA,
            )

        # 控制面独立部署，角色必须在运行时重新校验
        if not roles:
            raise GatewayError(
                "Invalid moodleRoles from MCP Keys endpoint: empty array",
                ErrorKind.INVALID_TENANT_DATA,
            )
        invalid = next((r for r in roles if not is_valid_role(r)), None)
        if invalid is not None:
            raise GatewayError(
                f"Invalid moodleRoles from MCP Keys endpoint: {invalid}",
                ErrorKind.INVALID_TENANT_DATA,
            )

        return Tenant(
            moodle_url=moodle_url,
            moodle_token=moodle_token,
            roles=frozenset(Role(r) for r in roles),
        )


def _normalize_roles(raw: Any) -> Optional[List[Any]]:
    """兼容旧版控制面：单个角色字符串等同于单元素列表"""
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        return [raw]
    return None


@lru_cache
def get_tenant_resolver() -> TenantResolver:
    """获取租户解析器单例"""
    return TenantResolver()
