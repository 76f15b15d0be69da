"""Error taxonomy for the gateway."""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for all gateway errors."""


class ToolError(GatewayError):
    """A failure while invoking a tool. Always recovered by the dispatcher."""

    kind = "ToolError"

    @property
    def details(self) -> Dict[str, Any]:
        """Structured fields carried into the failure result."""
        return {}


class UnknownTool(ToolError):
    kind = "UnknownTool"

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")

    @property
    def details(self) -> Dict[str, Any]:
        return {"tool": self.tool_name}


class InvalidArgument(ToolError):
    """Raised when a supplied argument does not satisfy the tool's schema.

    ``reason`` is one of ``missing-required``, ``wrong-type``,
    ``unknown-argument`` or ``invalid-value``.
    """

    kind = "InvalidArgument"

    MISSING_REQUIRED = "missing-required"
    WRONG_TYPE = "wrong-type"
    UNKNOWN_ARGUMENT = "unknown-argument"
    INVALID_VALUE = "invalid-value"

    def __init__(self, name: str, reason: str, detail: Optional[str] = None):
        self.name = name
        self.reason = reason
        self.detail = detail
        message = f"Invalid argument '{name}' ({reason})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def details(self) -> Dict[str, Any]:
        return {"argument": self.name, "reason": self.reason}


class RemoteUnavailable(ToolError):
    """The remote service could not be reached (timeout, refused, DNS)."""

    kind = "RemoteUnavailable"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Remote service unavailable: {message}")


class RemoteError(ToolError):
    """The remote service answered with a non-success status."""

    kind = "RemoteError"

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Remote service returned {status}: {message}")

    @property
    def details(self) -> Dict[str, Any]:
        return {"status": self.status}


class SessionError(GatewayError):
    """Protocol-sequencing error on the streaming transport."""


class DuplicateSession(SessionError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session already exists: {session_id}")


class SessionNotFound(SessionError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")
