"""
Moodle MCP Gateway

多租户 MCP 网关：MCP Key -> 租户 -> 按角色过滤的 Moodle Web Service 工具
"""

__version__ = "0.1.0"
