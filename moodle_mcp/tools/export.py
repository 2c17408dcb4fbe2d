"""
Moodle 服务函数导出

从工具注册表推导每个权限层级（moodlemcp_admin ... moodlemcp_user）可调用的
Moodle 函数，生成 Moodle 插件使用的 service_functions.php。

层级规则：工具授予的最低角色及其以上所有层级都包含该函数。
"""

from typing import Dict, List, Set

from moodle_mcp.core.rbac import ROLE_HIERARCHY, Role, roles_at_or_above
from moodle_mcp.tools.registry import ToolRegistry

SERVICE_PREFIX = "moodlemcp_"

PHP_LICENSE_HEADER = """<?php
// This file is part of Moodle - http://moodle.org/
//
// Moodle is free software: you can redistribute it and/or modify
// it under the terms of the GNU General Public License as published by
// the Free Software Foundation, either version 3 of the License, or
// (at your option) any later version.
//
// Moodle is distributed in the hope that it will be useful,
// but WITHOUT ANY WARRANTY; without even the implied warranty of
// MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
// GNU General Public License for more details.
//
// You should have received a copy of the GNU General Public License
// along with Moodle.  If not, see <http://www.gnu.org/licenses/>.

/**
 * Service function definitions for MoodleMCP.
 *
 * GENERATED CODE - DO NOT EDIT MANUALLY
 * Run: python scripts/export_functions.py
 *
 * @package    local_moodlemcp
 * @license    http://www.gnu.org/copyleft/gpl.html GNU GPL v3 or later
 */

defined('MOODLE_INTERNAL') || die();
"""


def service_name(role: Role) -> str:
    return f"{SERVICE_PREFIX}{role.value}"


def build_service_functions(registry: ToolRegistry) -> Dict[str, List[str]]:
    """
    按权限层级分组 Moodle 函数

    Returns:
        {服务名: 排序后的函数名列表}，按 admin -> user 顺序
    """
    services: Dict[str, Set[str]] = {service_name(role): set() for role in ROLE_HIERARCHY}

    for tool in registry.list_all():
        lowest = min(tool.allowed_roles, key=lambda r: r.rank)
        for role in roles_at_or_above(lowest):
            services[service_name(role)].add(tool.moodle_function)

    return {name: sorted(functions) for name, functions in services.items()}


def render_php(services: Dict[str, List[str]]) -> str:
    """生成 service_functions.php 内容"""
    lines = [
        "/**",
        " * Returns service definitions with their assigned functions.",
        " *",
        " * @return array Service definitions",
        " */",
        "function local_moodlemcp_get_service_definitions(): array {",
        "    return [",
    ]
    for name, functions in services.items():
        lines.append("        [")
        lines.append(f"            'shortname' => '{name}',")
        lines.append(f"            'name' => '{name}',")
        lines.append("            'functions' => [")
        lines.extend(f"                '{fn}'," for fn in functions)
        lines.append("            ],")
        lines.append("        ],")
    lines.append("    ];")
    lines.append("}")

    return f"{PHP_LICENSE_HEADER}\n" + "\n".join(lines) + "\n"
