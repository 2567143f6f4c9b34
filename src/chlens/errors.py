"""Structured API errors."""
import re
from typing import Any, Dict, Optional

# User-facing messages for well known ClickHouse error names
USER_FRIENDLY_MESSAGES = {
    "AUTHENTICATION_FAILED": "Invalid username or password",
    "ACCESS_DENIED": "Access denied - insufficient permissions",
    "UNKNOWN_USER": "Unknown user",
    "NETWORK_ERROR": "Network error - cannot reach ClickHouse server",
    "TIMEOUT_EXCEEDED": "Query timeout exceeded",
    "MEMORY_LIMIT_EXCEEDED": "Memory limit exceeded - try a smaller query",
    "SYNTAX_ERROR": "SQL syntax error",
    "UNKNOWN_TABLE": "Table not found",
    "UNKNOWN_DATABASE": "Database not found",
    "UNKNOWN_COLUMN": "Column not found",
}

_CODE_RE = re.compile(r"Code:\s*(\d+)")
_TYPE_RE = re.compile(r"\(([A-Z][A-Z0-9_]*)\)")


class ApiError(Exception):
    """Error returned to API callers inside a ``success: false`` envelope."""

    def __init__(self, code: int, message: str, type: str,
                 user_message: Optional[str] = None, status: int = 200):
        super().__init__(message)
        self.code = code
        self.message = message
        self.type = type
        self.user_message = user_message or message
        self.status = status

    @classmethod
    def auth_required(cls) -> "ApiError":
        return cls(401, "Not authenticated", "AUTH_REQUIRED",
                   "Please log in first", status=401)

    @classmethod
    def config_error(cls, message: str = "Lens user not configured") -> "ApiError":
        return cls(500, message, "CONFIG_ERROR",
                   "Server not properly configured", status=500)

    @classmethod
    def bad_request(cls, message: str, user_message: Optional[str] = None) -> "ApiError":
        return cls(400, message, "BAD_REQUEST", user_message, status=400)

    @classmethod
    def internal_error(cls, message: str, user_message: str) -> "ApiError":
        return cls(500, message or "Unknown error", "INTERNAL_ERROR", user_message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "type": self.type,
            "userMessage": self.user_message,
        }

    def envelope(self) -> Dict[str, Any]:
        return {"success": False, "error": self.to_dict()}


class ClickHouseQueryError(ApiError):
    """Error reported by the ClickHouse server or driver."""

    def __init__(self, code: int, message: str, type: str = "UNKNOWN_ERROR",
                 user_message: Optional[str] = None):
        super().__init__(code, message, type,
                         user_message or user_friendly_message(type, message))

    @classmethod
    def from_text(cls, text: str) -> "ClickHouseQueryError":
        """Parse ``Code: N. DB::Exception: ... (ERROR_NAME)`` server output."""
        text = (text or "").strip()
        code_match = _CODE_RE.search(text)
        # the error name is the last upper-case token in parentheses
        error_names = _TYPE_RE.findall(text)
        return cls(
            code=int(code_match.group(1)) if code_match else 0,
            message=text,
            type=error_names[-1] if error_names else "UNKNOWN_ERROR",
        )


def user_friendly_message(error_type: str, message: str) -> str:
    return USER_FRIENDLY_MESSAGES.get(error_type, message)
