"""
Moodle REST 客户端

- 统一拼接 /webservice/rest/server.php
- 支持 GET（默认）与 POST（form 编码）
- 嵌套参数按 key[index][field] 扁平化
- 超时 / 取消统一使用 CancellationToken
- HTTP 错误、非法 JSON、Moodle exception 均转换为带错误类型的结果
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

import httpx
import structlog

from moodle_mcp.core.config import safe_url, settings
from moodle_mcp.core.errors import ErrorKind
from moodle_mcp.moodle.cancellation import CancellationToken, cancellation_scope
from moodle_mcp.moodle.params import flatten_params
from moodle_mcp.tools.schemas import HttpMethod

logger = structlog.get_logger(__name__)

MOODLE_REST_PATH = "/webservice/rest/server.php"
MOODLE_REST_FORMAT = "json"


class RequestCancelled(Exception):
    """请求被取消（调用方取消或内部超时）"""

    def __init__(self, reason: Optional[str]):
        self.reason = reason or "cancelled"
        super().__init__(self.reason)


@dataclass
class MoodleCallResult:
    """Moodle 调用结果"""

    function: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    status_code: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: Optional[int] = None


def build_rest_url(moodle_url: str) -> str:
    return f"{moodle_url.rstrip('/')}{MOODLE_REST_PATH}"


def looks_like_json(text: str) -> bool:
    t = text.strip()
    return (t.startswith("{") and t.endswith("}")) or (t.startswith("[") and t.endswith("]"))


def _is_json_content_type(content_type: str) -> bool:
    ct = content_type.lower()
    return "application/json" in ct or "+json" in ct


async def _race(request: "asyncio.Future[httpx.Response]", token: CancellationToken) -> httpx.Response:
    """请求与取消信号竞争，先完成者胜出"""
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({request, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = [t for t in (request, waiter) if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if request in done:
        return request.result()
    raise RequestCancelled(token.reason)


class MoodleClient:
    """Moodle Web Service 客户端"""

    def __init__(
        self,
        timeout_ms: Optional[int] = None,
        snippet_max_length: Optional[int] = None,
        default_error_message: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.MOODLE_TIMEOUT_MS
        self.snippet_max_length = snippet_max_length or settings.MOODLE_ERROR_SNIPPET_MAX_LENGTH
        self.default_error_message = default_error_message or settings.MOODLE_DEFAULT_ERROR_MESSAGE
        self._transport = transport

    async def call(
        self,
        moodle_url: str,
        token: str,
        function: str,
        params: Mapping[str, Any],
        method: HttpMethod = HttpMethod.GET,
        cancellation: Optional[CancellationToken] = None,
        timeout_ms: Optional[int] = None,
    ) -> MoodleCallResult:
        """
        调用 Moodle Web Service 函数

        Args:
            moodle_url: Moodle 站点根地址
            token: Web Service token
            function: wsfunction 名称
            params: 调用参数（可嵌套）
            method: GET / POST
            cancellation: 调用方取消令牌；为空时由客户端按 timeout_ms 自行超时
            timeout_ms: 超时时间（毫秒），默认 MOODLE_TIMEOUT_MS

        Returns:
            MoodleCallResult（失败时带 error_kind）
        """
        url = build_rest_url(moodle_url)
        payload = {
            **flatten_params(params),
            "wstoken": token,
            "wsfunction": function,
            "moodlewsrestformat": MOODLE_REST_FORMAT,
        }
        effective_timeout = self.timeout_ms if timeout_ms is None else timeout_ms

        log = logger.bind(wsfunction=function, method=method.value, moodle_url=safe_url(moodle_url))
        start_time = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start_time) * 1000)

        async with cancellation_scope(cancellation, effective_timeout) as active_token:
            try:
                log.debug("moodle_call_start")
                response = await self._send(url, method, payload, active_token)
            except RequestCancelled as e:
                log.warning("moodle_call_cancelled", reason=e.reason, latency_ms=elapsed())
                if e.reason == "timeout":
                    message = f"Moodle call timed out after {effective_timeout}ms calling {function}."
                else:
                    message = f"Moodle call cancelled calling {function}."
                return MoodleCallResult(
                    function=function,
                    success=False,
                    error=message,
                    error_kind=ErrorKind.REMOTE_TIMEOUT_OR_CANCELLED,
                    details={"reason": e.reason},
                    duration_ms=elapsed(),
                )
            except httpx.TimeoutException as e:
                log.warning("moodle_call_timeout", error=str(e), latency_ms=elapsed())
                return MoodleCallResult(
                    function=function,
                    success=False,
                    error=f"Moodle call timed out calling {function}.",
                    error_kind=ErrorKind.REMOTE_TIMEOUT_OR_CANCELLED,
                    details={"reason": "timeout"},
                    duration_ms=elapsed(),
                )
            except httpx.HTTPError as e:
                log.error("moodle_call_error", error_type=type(e).__name__, error=str(e), latency_ms=elapsed())
                return MoodleCallResult(
                    function=function,
                    success=False,
                    error=f"Moodle request failed calling {function}: {type(e).__name__}",
                    error_kind=ErrorKind.REMOTE_TRANSPORT_ERROR,
                    details={"error_type": type(e).__name__},
                    duration_ms=elapsed(),
                )

        result = self._interpret(function, response, log)
        result.duration_ms = elapsed()
        if result.success:
            log.info("moodle_call_success", latency_ms=result.duration_ms)
        return result

    async def _send(
        self,
        url: str,
        method: HttpMethod,
        payload: Dict[str, str],
        token: CancellationToken,
    ) -> httpx.Response:
        if token.cancelled:
            raise RequestCancelled(token.reason)

        async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
            if method == HttpMethod.POST:
                request = asyncio.ensure_future(client.post(
                    url,
                    data=payload,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                ))
            else:
                request = asyncio.ensure_future(client.get(url, params=payload))
            return await _race(request, token)

    def _excerpt(self, text: str) -> str:
        return text[: self.snippet_max_length]

    def _interpret(self, function: str, response: httpx.Response, log: Any) -> MoodleCallResult:
        """解析响应（响应体只读取一次）"""
        content_type = response.headers.get("content-type", "")
        raw_text = response.text

        if not response.is_success:
            excerpt = self._excerpt(raw_text)
            log.error("moodle_http_error", status_code=response.status_code, body=excerpt)
            return MoodleCallResult(
                function=function,
                success=False,
                error=(
                    f"Moodle HTTP error ({response.status_code} {response.reason_phrase}) "
                    f"calling {function}."
                ),
                error_kind=ErrorKind.REMOTE_TRANSPORT_ERROR,
                status_code=response.status_code,
                details={
                    "status": response.status_code,
                    "reason": response.reason_phrase,
                    "body_excerpt": excerpt,
                },
            )

        if not (_is_json_content_type(content_type) or looks_like_json(raw_text)):
            # 代理 / 配置异常时可能返回非 JSON，原样返回文本
            log.warning("moodle_non_json_response", content_type=content_type)
            return MoodleCallResult(
                function=function,
                success=True,
                data=raw_text,
                status_code=response.status_code,
            )

        try:
            data = json.loads(raw_text) if raw_text else None
        except ValueError:
            excerpt = self._excerpt(raw_text)
            log.error("moodle_invalid_json", content_type=content_type, body=excerpt)
            return MoodleCallResult(
                function=function,
                success=False,
                error=f"Moodle response was not valid JSON calling {function}. Content-Type: {content_type}.",
                error_kind=ErrorKind.INVALID_REMOTE_JSON,
                status_code=response.status_code,
                details={"content_type": content_type, "body_excerpt": excerpt},
            )

        # Moodle 即使 HTTP 200 也会在 JSON 中返回 exception
        if isinstance(data, dict) and data.get("exception"):
            return self._application_error(function, data, response.status_code, log)

        return MoodleCallResult(
            function=function,
            success=True,
            data=data,
            status_code=response.status_code,
        )

    def _application_error(
        self,
        function: str,
        data: Dict[str, Any],
        status_code: int,
        log: Any,
    ) -> MoodleCallResult:
        exception = str(data["exception"])
        errorcode = str(data["errorcode"]) if data.get("errorcode") else None
        message = str(data["message"]) if data.get("message") else self.default_error_message
        debuginfo = str(data["debuginfo"]) if data.get("debuginfo") else None

        parts = [f"exception={exception}"]
        if errorcode:
            parts.append(f"errorcode={errorcode}")
        if debuginfo:
            parts.append(f"debuginfo={debuginfo}")

        log.warning("moodle_application_error", exception=exception, errorcode=errorcode)
        return MoodleCallResult(
            function=function,
            success=False,
            error=f"Moodle API error calling {function}: {message} ({' '.join(parts)})",
            error_kind=ErrorKind.REMOTE_APPLICATION_ERROR,
            status_code=status_code,
            details={
                "exception": exception,
                "errorcode": errorcode,
                "message": message,
                "debuginfo": debuginfo,
            },
        )


@lru_cache
def get_moodle_client() -> MoodleClient:
    """获取 Moodle 客户端单例"""
    return MoodleClient()
