"""core_user_* 工具"""

from typing import List

from moodle_mcp.core.rbac import Role
from moodle_mcp.tools.schemas import HttpMethod, JSONSchema, ToolExamples, ToolSpec

_type_value_item: JSONSchema = {
    "type": "object",
    "properties": {
        "type": {"type": "string"},
        "value": {"type": "string"},
    },
    "required": ["type", "value"],
    "additionalProperties": False,
}

created_user_schema: JSONSchema = {
    "type": "object",
    "properties": {
        "id": {"type": "number"},
        "username": {"type": "string"},
    },
    "required": ["id", "username"],
    "additionalProperties": False,
}

create_users_response_schema: JSONSchema = {
    "type": "array",
    "items": created_user_schema,
}

# Moodle 可能返回 true 或空对象，两种都接受
delete_users_response_schema: JSONSchema = {
    "anyOf": [{"type": "boolean"}, {"type": "object"}],
}

create_users_input_schema: JSONSchema = {
    "type": "object",
    "properties": {
        "users": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "createpassword": {"type": "number"},
                    "username": {"type": "string", "minLength": 1, "pattern": "^\\S+$"},
                    "auth": {"type": "string"},
                    "password": {"type": "string"},
                    "firstname": {"type": "string", "minLength": 1},
                    "lastname": {"type": "string", "minLength": 1},
                    "email": {"type": "string", "format": "email"},
                    "maildisplay": {"type": "number", "enum": [0, 1]},
                    "city": {"type": "string"},
                    "country": {"type": "string", "minLength": 2, "maxLength": 2},
                    "timezone": {"type": "string"},
                    "description": {"type": "string"},
                    "firstnamephonetic": {"type": "string"},
                    "lastnamephonetic": {"type": "string"},
                    "middlename": {"type": "string"},
                    "alternatename": {"type": "string"},
                    "interests": {"type": "string"},
                    "idnumber": {"type": "string"},
                    "institution": {"type": "string"},
                    "department": {"type": "string"},
                    "phone1": {"type": "string"},
                    "phone2": {"type": "string"},
                    "address": {"type": "string"},
                    "lang": {"type": "string", "minLength": 2},
                    "calendartype": {"type": "string"},
                    "theme": {"type": "string"},
                    "mailformat": {"type": "number"},
                    "customfields": {"type": "array", "items": _type_value_item},
                    "preferences": {"type": "array", "items": _type_value_item},
                },
                "required": ["username", "firstname", "lastname", "email"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["users"],
    "additionalProperties": False,
}

delete_users_input_schema: JSONSchema = {
    "type": "object",
    "properties": {
        "userids": {"type": "array", "items": {"type": "number"}, "minItems": 1},
    },
    "required": ["userids"],
    "additionalProperties": False,
}

core_user_tools: List[ToolSpec] = [
    ToolSpec(
        name="core_user_create_users",
        moodle_function="core_user_create_users",
        description="Create one or more users in Moodle.",
        input_schema=create_users_input_schema,
        output_schema=create_users_response_schema,
        allowed_roles=frozenset({Role.ADMIN, Role.MANAGER}),
        method=HttpMethod.POST,
        examples=ToolExamples(
            minimal={
                "users": [
                    {
                        "username": "jdoe",
                        "firstname": "John",
                        "lastname": "Doe",
                        "email": "jdoe@example.org",
                    },
                ],
            },
            typical={
                "users": [
                    {
                        "username": "jdoe",
                        "createpassword": 1,
                        "firstname": "John",
                        "lastname": "Doe",
                        "email": "jdoe@example.org",
                        "city": "Madrid",
                        "country": "ES",
                        "lang": "es",
                    },
                ],
            },
        ),
    ),
    ToolSpec(
        name="core_user_delete_users",
        moodle_function="core_user_delete_users",
        description="Delete one or more users by id.",
        input_schema=delete_users_input_schema,
        output_schema=delete_users_response_schema,
        allowed_roles=frozenset({Role.ADMIN, Role.MANAGER}),
        method=HttpMethod.POST,
        examples=ToolExamples(minimal={"userids": [42]}),
    ),
]
