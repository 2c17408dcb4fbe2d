"""
Moodle 参数扁平化

Moodle REST 只接受扁平的 form / query 编码，嵌套结构按 PHP 约定展开：
    {"users": [{"username": "jdoe"}]} -> {"users[0][username]": "jdoe"}
"""

from typing import Any, Dict, Mapping


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten_into(flat: Dict[str, str], key: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for k, v in value.items():
            _flatten_into(flat, f"{key}[{k}]", v)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _flatten_into(flat, f"{key}[{index}]", item)
    else:
        flat[key] = _scalar(value)


def flatten_params(params: Mapping[str, Any]) -> Dict[str, str]:
    """嵌套参数 -> 扁平 key[index][field] 映射（None 值直接丢弃）"""
    flat: Dict[str, str] = {}
    for key, value in params.items():
        _flatten_into(flat, key, value)
    return flat
