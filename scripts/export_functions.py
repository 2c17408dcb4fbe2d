#!/usr/bin/env python3
"""
导出 Moodle 服务函数定义

用法:
    python scripts/export_functions.py
    python scripts/export_functions.py --output ../plugin/db/service_functions.php
    python scripts/export_functions.py --dry-run

功能:
    1. 加载内置工具注册表
    2. 按权限层级（moodlemcp_admin ... moodlemcp_user）汇总 Moodle 函数
    3. 生成 Moodle 插件的 service_functions.php
"""

import argparse
import sys
from pathlib import Path

from moodle_mcp.tools.export import build_service_functions, render_php
from moodle_mcp.tools.registry import get_tool_registry

DEFAULT_OUTPUT = Path(__file__).resolve().parent.parent.parent / "plugin" / "db" / "service_functions.php"


def main() -> int:
    parser = argparse.ArgumentParser(description="导出 Moodle 服务函数定义")
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT, help="输出文件路径")
    parser.add_argument("--dry-run", action="store_true", help="只打印，不写文件")
    args = parser.parse_args()

    registry = get_tool_registry()
    print(f"\n📦 已加载 {len(registry)} 个工具")

    services = build_service_functions(registry)

    print("\n各服务函数数量:")
    for name, functions in services.items():
        print(f"   {name}: {len(functions)}")

    php = render_php(services)

    if args.dry_run:
        print("\n" + php)
        return 0

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(php, encoding="utf-8")
    print(f"\n✅ 已写入: {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
