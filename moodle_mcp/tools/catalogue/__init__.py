"""
内置工具目录

每个工具对应一个 Moodle Web Service 函数
"""

from typing import List

from moodle_mcp.tools.catalogue.calendar import core_calendar_tools
from moodle_mcp.tools.catalogue.course import core_course_tools
from moodle_mcp.tools.catalogue.enrol import core_enrol_tools
from moodle_mcp.tools.catalogue.user import core_user_tools
from moodle_mcp.tools.catalogue.webservice import core_webservice_tools
from moodle_mcp.tools.schemas import ToolSpec

ALL_TOOLS: List[ToolSpec] = [
    *core_webservice_tools,
    *core_calendar_tools,
    *core_course_tools,
    *core_enrol_tools,
    *core_user_tools,
]

__all__ = ["ALL_TOOLS"]
