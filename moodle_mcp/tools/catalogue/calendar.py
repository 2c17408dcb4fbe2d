"""core_calendar_* 工具"""

from typing import List

from moodle_mcp.core.rbac import Role
from moodle_mcp.tools.schemas import ToolExamples, ToolSpec

core_calendar_tools: List[ToolSpec] = [
    ToolSpec(
        name="core_calendar_get_calendar_events",
        moodle_function="core_calendar_get_calendar_events",
        description=(
            "Get calendar events. Filter by course, group or event ids and by a time window "
            "(unix timestamps)."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "events": {
                    "type": "object",
                    "properties": {
                        "eventids": {"type": "array", "items": {"type": "integer"}},
                        "courseids": {"type": "array", "items": {"type": "integer"}},
                        "groupids": {"type": "array", "items": {"type": "integer"}},
                        "categoryids": {"type": "array", "items": {"type": "integer"}},
                    },
                    "additionalProperties": False,
                },
                "options": {
                    "type": "object",
                    "properties": {
                        "userevents": {"type": "integer", "enum": [0, 1]},
                        "siteevents": {"type": "integer", "enum": [0, 1]},
                        "timestart": {"type": "integer"},
                        "timeend": {"type": "integer"},
                        "ignorehidden": {"type": "integer", "enum": [0, 1]},
                    },
                    "additionalProperties": False,
                },
            },
            "additionalProperties": False,
        },
        output_schema={
            "type": "object",
            "properties": {
                "events": {"type": "array", "items": {"type": "object"}},
                "warnings": {"type": "array"},
            },
            "required": ["events"],
        },
        allowed_roles=frozenset({
            Role.ADMIN,
            Role.MANAGER,
            Role.EDITINGTEACHER,
            Role.TEACHER,
            Role.STUDENT,
        }),
        examples=ToolExamples(
            minimal={},
            typical={
                "events": {"courseids": [2]},
                "options": {"timestart": 1735689600, "timeend": 1738368000},
            },
        ),
    ),
]
