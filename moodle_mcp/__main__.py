"""python -m moodle_mcp"""

import uvicorn

from moodle_mcp.core.config import settings


def main() -> None:
    uvicorn.run(
        "moodle_mcp.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower() if settings.LOG_LEVEL.lower() != "silent" else "critical",
    )


if __name__ == "__main__":
    main()
