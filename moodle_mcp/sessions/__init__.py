from moodle_mcp.sessions.manager import SessionContext, SessionManager

__all__ = ["SessionContext", "SessionManager"]
