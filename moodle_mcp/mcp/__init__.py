"""
MCP 协议层

- dispatcher: 会话引导与路由（与传输实现解耦）
- server: 每个租户的 MCP Server（tools/list, tools/call）
- transport: Streamable HTTP 传输绑定
"""
