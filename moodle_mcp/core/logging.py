"""
日志配置

基于 structlog 的结构化日志：
- 开发环境输出彩色控制台格式
- 生产环境输出 JSON（便于日志平台采集）
- LOG_LEVEL=silent 时完全静默
"""

import logging
import sys

import structlog

from moodle_mcp.core.config import settings


def setup_logging() -> None:
    """初始化日志系统（应用启动时调用一次）"""
    level_name = settings.LOG_LEVEL.upper()
    if level_name == "SILENT":
        level = logging.CRITICAL + 10
    else:
        level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.is_production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
