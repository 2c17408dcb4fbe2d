"""
Schema 校验

- SchemaValidator: 编译并缓存 JSON Schema 校验器（按 工具名:方向 缓存）
- format_validation_error: 把违规列表整理为结构化错误，供 Agent 自我纠正
"""

import re
from functools import lru_cache
from typing import Any, Dict, Hashable, Iterable, List

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import ValidationError

from moodle_mcp.core.errors import ErrorKind
from moodle_mcp.tools.schemas import (
    FieldError,
    JSONSchema,
    VALIDATION_ERROR_MESSAGE,
    ToolSpec,
    ValidationErrorPayload,
    ValidationOutcome,
    Violation,
)


class SchemaValidator:
    """JSON Schema 校验器（带编译缓存）"""

    def __init__(self) -> None:
        self._compiled: Dict[Hashable, Draft7Validator] = {}
        self._format_checker = FormatChecker()

    @staticmethod
    def check_schema(schema: JSONSchema) -> None:
        """
        检查 schema 本身是否合法

        Raises:
            jsonschema.exceptions.SchemaError: schema 不合法（启动期致命错误）
        """
        Draft7Validator.check_schema(schema)

    def compile(self, key: Hashable, schema: JSONSchema) -> Draft7Validator:
        """编译 schema，同一 key 只编译一次"""
        checker = self._compiled.get(key)
        if checker is None:
            self.check_schema(schema)
            checker = Draft7Validator(schema, format_checker=self._format_checker)
            self._compiled[key] = checker
        return checker

    def check(self, checker: Draft7Validator, value: Any) -> ValidationOutcome:
        """校验数据，返回有序的违规列表"""
        violations: List[Violation] = []
        for error in checker.iter_errors(value):
            violations.extend(_to_violations(error))
        return ValidationOutcome(ok=not violations, violations=violations)

    def validate(self, key: Hashable, schema: JSONSchema, value: Any) -> ValidationOutcome:
        return self.check(self.compile(key, schema), value)

    @property
    def cache_size(self) -> int:
        return len(self._compiled)


@lru_cache
def get_schema_validator() -> SchemaValidator:
    """获取进程级校验器单例（编译缓存全局共享）"""
    return SchemaValidator()


def _instance_path(error: ValidationError) -> str:
    if not error.absolute_path:
        return ""
    return "/" + "/".join(str(part) for part in error.absolute_path)


def _find_additional_properties(instance: Dict[str, Any], schema: JSONSchema) -> List[str]:
    properties = schema.get("properties") or {}
    patterns = list((schema.get("patternProperties") or {}).keys())
    extras = []
    for name in instance:
        if name in properties:
            continue
        if any(re.search(pattern, name) for pattern in patterns):
            continue
        extras.append(name)
    return extras


def _to_violations(error: ValidationError) -> Iterable[Violation]:
    """jsonschema 错误 -> Violation（与关键字一一对应）"""
    path = _instance_path(error)
    keyword = str(error.validator)

    if keyword == "required":
        missing = next(
            (
                name for name in error.validator_value
                if isinstance(error.instance, dict)
                and name not in error.instance
                and error.message.startswith(repr(name))
            ),
            None,
        )
        return [Violation(path, keyword, {"missingProperty": missing}, error.message)]

    if keyword == "additionalProperties" and isinstance(error.instance, dict):
        extras = _find_additional_properties(error.instance, error.schema)
        if extras:
            return [
                Violation(path, keyword, {"additionalProperty": name}, error.message)
                for name in extras
            ]

    if keyword == "type":
        return [Violation(path, keyword, {"type": error.validator_value}, error.message)]

    if keyword == "format":
        return [Violation(path, keyword, {"format": error.validator_value}, error.message)]

    if keyword == "enum":
        return [Violation(path, keyword, {"allowedValues": list(error.validator_value)}, error.message)]

    if keyword in ("minLength", "maxLength", "minItems", "maxItems"):
        return [Violation(path, keyword, {"limit": error.validator_value}, error.message)]

    if keyword == "pattern":
        return [Violation(path, keyword, {"pattern": error.validator_value}, error.message)]

    return [Violation(path, keyword, {}, error.message)]


def _uniq(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def format_validation_error(
    spec: ToolSpec,
    violations: Iterable[Violation],
    direction: str = "input",
) -> ValidationErrorPayload:
    """
    把违规整理为结构化错误

    Args:
        spec: 工具定义（提供 allowedProperties 与示例参数）
        violations: 校验违规列表
        direction: "input" 校验调用参数；"output" 校验 Moodle 返回值

    Returns:
        ValidationErrorPayload
    """
    is_output = direction == "output"
    if is_output:
        schema: JSONSchema = spec.output_schema or {}
        allowed_properties = list((schema.get("properties") or {}).keys())
    else:
        allowed_properties = spec.allowed_properties

    missing_required: List[str] = []
    unexpected_properties: List[str] = []
    field_errors: List[FieldError] = []

    for v in violations:
        path = v.path or "/"

        if v.keyword == "required":
            missing = v.params.get("missingProperty")
            if missing:
                missing_required.append(missing)
            field_errors.append(FieldError(
                path=path,
                issue="missing_required",
                expected=f"property '{missing}'" if missing else None,
                details=v.params,
            ))
            continue

        if v.keyword == "additionalProperties":
            extra = v.params.get("additionalProperty")
            if extra:
                unexpected_properties.append(extra)
            field_errors.append(FieldError(
                path=path,
                issue="unexpected_property",
                expected=(
                    f"only: {', '.join(allowed_properties)}"
                    if allowed_properties
                    else "no extra properties"
                ),
                details=v.params,
            ))
            continue

        if v.keyword == "type":
            expected = v.params.get("type")
            field_errors.append(FieldError(
                path=path,
                issue="wrong_type",
                expected=", ".join(expected) if isinstance(expected, list) else expected,
                details=v.params,
            ))
            continue

        field_errors.append(FieldError(
            path=path,
            issue=v.keyword,
            details={"message": v.message, "params": v.params},
        ))

    return ValidationErrorPayload(
        tool=f"{spec.name}:response" if is_output else spec.name,
        allowed_properties=allowed_properties,
        missing_required=_uniq(missing_required),
        unexpected_properties=_uniq(unexpected_properties),
        field_errors=field_errors,
        example_minimal=None if is_output else spec.examples.minimal,
        example_typical=None if is_output else spec.examples.typical,
        message=(
            f"Moodle returned a response that does not match the declared output schema of {spec.name}."
            if is_output
            else VALIDATION_ERROR_MESSAGE
        ),
        kind=ErrorKind.INVALID_UPSTREAM_RESPONSE if is_output else ErrorKind.VALIDATION_ERROR,
    )
