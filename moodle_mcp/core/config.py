"""
应用配置

使用 pydantic-settings 管理环境变量配置
"""

from functools import lru_cache
from typing import List
from urllib.parse import urlsplit, urlunsplit

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # 基础配置
    APP_NAME: str = "moodle-mcp-gateway"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # 服务配置
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # 控制面（MCP Key -> 租户）
    MCP_KEYS_ENDPOINT: str = "https://app.moodlemcp.com/api/mcp"
    CONTROL_PLANE_TIMEOUT_SECONDS: float = 10.0
    CONTROL_PLANE_USER_AGENT: str = "moodle-mcp-server/1.0"

    # Moodle REST 调用
    MOODLE_TIMEOUT_MS: int = 30_000
    MOODLE_ERROR_SNIPPET_MAX_LENGTH: int = 800
    MOODLE_DEFAULT_ERROR_MESSAGE: str = "Error de la API de Moodle"

    # 会话配置
    SESSION_TTL_SECONDS: int = 30 * 60           # 30 分钟无活动即过期
    SESSION_SWEEP_INTERVAL_SECONDS: int = 5 * 60  # 每 5 分钟清理一次

    # MCP 传输
    MCP_SERVER_NAME: str = "moodle-mcp-server"
    MCP_JSON_RESPONSE: bool = False

    # CORS 配置
    CORS_ORIGINS: List[str] = ["*"]

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def safe_url(url: str) -> str:
    """去掉 query 和账号信息，便于写日志"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    netloc = parts.hostname or ""
    if ":" in netloc:
        netloc = f"[{netloc}]"
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, "", parts.fragment))
