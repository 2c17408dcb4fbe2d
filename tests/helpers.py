"""
测试辅助函数
"""

import json
from typing import Any, Callable, Dict, List

import httpx

from moodle_mcp.core.rbac import Role
from moodle_mcp.moodle.client import MoodleClient
from moodle_mcp.tenancy.models import Tenant

MOODLE_URL = "https://moodle.example.org"
MOODLE_TOKEN = "secret-token"


class RecordingHandler:
    """记录请求并按给定函数返回响应的 MockTransport 处理器"""

    def __init__(self, respond: Callable[[httpx.Request], Any]):
        self.respond = respond
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.respond(request)
        if hasattr(response, "__await__"):
            response = await response
        return response

    @property
    def called(self) -> bool:
        return bool(self.requests)


def json_response(data: Any, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code,
            content=json.dumps(data).encode(),
            headers={"content-type": "application/json"},
        )

    return respond


def make_client(handler: Callable, timeout_ms: int = 30_000) -> MoodleClient:
    return MoodleClient(timeout_ms=timeout_ms, transport=httpx.MockTransport(handler))


def make_tenant(*roles: Role, url: str = MOODLE_URL, token: str = MOODLE_TOKEN) -> Tenant:
    return Tenant(moodle_url=url, moodle_token=token, roles=frozenset(roles or (Role.ADMIN,)))


def request_params(request: httpx.Request) -> Dict[str, str]:
    """解析请求参数（GET 取 query，POST 取 form body）"""
    if request.method == "POST":
        return dict(httpx.QueryParams(request.content.decode()))
    return dict(request.url.params)
