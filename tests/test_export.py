"""
Moodle 服务函数导出测试
"""

from moodle_mcp.core.rbac import Role
from moodle_mcp.tools.export import build_service_functions, render_php
from moodle_mcp.tools.registry import ToolRegistry
from moodle_mcp.tools.schemas import ToolSpec


def _tool(name: str, *roles: Role) -> ToolSpec:
    return ToolSpec(
        name=name,
        moodle_function=name,
        description=name,
        input_schema={"type": "object"},
        allowed_roles=frozenset(roles),
    )


class TestBuildServiceFunctions:
    """层级推导测试"""

    def test_lower_grant_implies_higher_tiers(self):
        """测试低层级授权包含所有更高层级"""
        registry = ToolRegistry([
            _tool("fn_student", Role.STUDENT),
            _tool("fn_manager", Role.MANAGER, Role.ADMIN),
            _tool("fn_user", Role.USER),
        ])

        services = build_service_functions(registry)

        assert list(services) == [
            "moodlemcp_admin",
            "moodlemcp_manager",
            "moodlemcp_editingteacher",
            "moodlemcp_teacher",
            "moodlemcp_student",
            "moodlemcp_user",
        ]
        assert services["moodlemcp_admin"] == ["fn_manager", "fn_student", "fn_user"]
        assert services["moodlemcp_manager"] == ["fn_manager", "fn_student", "fn_user"]
        assert services["moodlemcp_teacher"] == ["fn_student", "fn_user"]
        assert services["moodlemcp_student"] == ["fn_student", "fn_user"]
        assert services["moodlemcp_user"] == ["fn_user"]

    def test_builtin_catalogue(self, registry):
        """测试内置工具"""
        services = build_service_functions(registry)

        assert "core_user_create_users" in services["moodlemcp_manager"]
        assert "core_user_create_users" not in services["moodlemcp_teacher"]
        assert "core_webservice_get_site_info" in services["moodlemcp_user"]


class TestRenderPhp:
    """PHP 生成测试"""

    def test_render(self):
        """测试 PHP 输出"""
        php = render_php({"moodlemcp_admin": ["core_a", "core_b"], "moodlemcp_user": []})

        assert php.startswith("<?php")
        assert "defined('MOODLE_INTERNAL') || die();" in php
        assert "function local_moodlemcp_get_service_definitions(): array {" in php
        assert "'shortname' => 'moodlemcp_admin'," in php
        assert "                'core_b'," in php
        assert php.endswith("}\n")
