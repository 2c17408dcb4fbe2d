"""core_enrol_* 工具"""

from typing import List

from moodle_mcp.core.rbac import Role
from moodle_mcp.tools.schemas import ToolExamples, ToolSpec

core_enrol_tools: List[ToolSpec] = [
    ToolSpec(
        name="core_enrol_get_users_courses",
        moodle_function="core_enrol_get_users_courses",
        description="Returns the list of courses the given user is enrolled in.",
        input_schema={
            "type": "object",
            "properties": {
                "userid": {
                    "type": "integer",
                    "description": "The user ID to get enrolled courses for.",
                },
            },
            "required": ["userid"],
            "additionalProperties": False,
        },
        allowed_roles=frozenset({
            Role.ADMIN,
            Role.MANAGER,
            Role.EDITINGTEACHER,
            Role.TEACHER,
            Role.STUDENT,
        }),
        examples=ToolExamples(minimal={"userid": 123}),
    ),
]
