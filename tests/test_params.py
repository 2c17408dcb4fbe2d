"""
Moodle 参数扁平化测试
"""

import re
from typing import Any, Dict

from moodle_mcp.moodle.params import flatten_params


def decode_php_params(flat: Dict[str, str]) -> Dict[str, Any]:
    """按 PHP 的 key[index][field] 约定还原嵌套结构（数字下标还原为列表）"""
    root: Dict[str, Any] = {}
    for key, value in flat.items():
        parts = [key.split("[", 1)[0]] + re.findall(r"\[([^\]]*)\]", key)
        node = root
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value

    def listify(node: Any) -> Any:
        if not isinstance(node, dict):
            return node
        if node and all(k.isdigit() for k in node):
            return [listify(node[k]) for k in sorted(node, key=int)]
        return {k: listify(v) for k, v in node.items()}

    return listify(root)


class TestFlattenParams:
    """参数扁平化测试"""

    def test_list_round_trip(self):
        """测试数组按 PHP 约定还原为有序列表"""
        flat = flatten_params({"ids": [1, 2]})

        assert flat == {"ids[0]": "1", "ids[1]": "2"}
        assert decode_php_params(flat) == {"ids": ["1", "2"]}

    def test_nested_objects(self):
        """测试对象数组"""
        flat = flatten_params({
            "users": [
                {"username": "jdoe", "customfields": [{"type": "dept", "value": "math"}]},
            ],
        })

        assert flat == {
            "users[0][username]": "jdoe",
            "users[0][customfields][0][type]": "dept",
            "users[0][customfields][0][value]": "math",
        }

    def test_scalars(self):
        """测试标量转换"""
        flat = flatten_params({"flag": True, "off": False, "n": 3, "s": "x", "none": None})

        assert flat == {"flag": "true", "off": "false", "n": "3", "s": "x"}

    def test_empty(self):
        """测试空参数"""
        assert flatten_params({}) == {}
        assert flatten_params({"ids": []}) == {}
