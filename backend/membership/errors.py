"""Structured error type shared by the gate, the services and the HTTP layer.

Every failure that reaches a client is rendered as::

    {"success": false, "message": "...", "error": "STABLE_CODE", ...context}

The ``error`` code is the contract callers branch on; ``message`` is for humans.
"""
from typing import Any, Dict, Optional


class MembershipError(Exception):
    """A caller-facing failure with a stable error code."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message
        self.context = context or {}

    def to_response(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, "error": self.error, **self.context}


def not_found(message: str = "User not found") -> MembershipError:
    return MembershipError(404, "USER_NOT_FOUND", message)


def bad_request(error: str, message: str, **context: Any) -> MembershipError:
    return MembershipError(400, error, message, context)


def forbidden(error: str, message: str, **context: Any) -> MembershipError:
    return MembershipError(403, error, message, context)
