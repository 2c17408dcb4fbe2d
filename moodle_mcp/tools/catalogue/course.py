"""core_course_* 工具"""

from typing import List

from moodle_mcp.core.rbac import Role
from moodle_mcp.tools.schemas import ToolExamples, ToolSpec

core_course_tools: List[ToolSpec] = [
    ToolSpec(
        name="core_course_get_courses",
        moodle_function="core_course_get_courses",
        description="Gets the list of available courses in Moodle.",
        input_schema={
            "type": "object",
            "properties": {},
            "additionalProperties": False,
        },
        allowed_roles=frozenset({Role.ADMIN, Role.MANAGER}),
        examples=ToolExamples(minimal={}),
    ),
]
