"""core_webservice_* 工具"""

from typing import List

from moodle_mcp.core.rbac import Role
from moodle_mcp.tools.schemas import ToolExamples, ToolSpec

core_webservice_tools: List[ToolSpec] = [
    ToolSpec(
        name="core_webservice_get_site_info",
        moodle_function="core_webservice_get_site_info",
        description=(
            "Returns information about the Moodle site and the current user "
            "(site name, user id, available functions)."
        ),
        input_schema={
            "type": "object",
            "properties": {},
            "additionalProperties": False,
        },
        output_schema={
            "type": "object",
            "properties": {
                "sitename": {"type": "string"},
                "username": {"type": "string"},
                "userid": {"type": "integer"},
                "siteurl": {"type": "string"},
                "functions": {"type": "array"},
            },
            "required": ["sitename", "userid"],
        },
        allowed_roles=frozenset(Role),
        examples=ToolExamples(minimal={}),
    ),
]
