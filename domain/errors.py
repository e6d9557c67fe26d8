"""
Client-side error taxonomy.

Repositories never let raw transport errors escape: every failure is
normalized by ApiClient into one of these, carrying a human-readable message
and, where available, the server error code and HTTP status.
"""
from typing import Any

from domain.constants import NETWORK_ERROR_MESSAGE, SERVER_ERROR_MESSAGE


class AppError(Exception):
    """Base class for all errors surfaced to the UI layer."""
    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NetworkError(AppError):
    """No response received (offline, DNS, timeout)."""
    def __init__(self, message: str = NETWORK_ERROR_MESSAGE, details: dict | None = None):
        super().__init__(message, details=details)


class AuthError(AppError):
    """401 that could not be resolved by a token refresh. Forces logout."""
    def __init__(self, message: str = "Session expired. Please log in again.", **kwargs):
        kwargs.setdefault("status_code", 401)
        super().__init__(message, **kwargs)


class ValidationError(AppError):
    """4xx with a server message that is shown to the user verbatim."""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("status_code", 400)
        super().__init__(message, **kwargs)


class NotFoundError(AppError):
    """Resource not found (404)."""
    def __init__(self, message: str = "Not found", **kwargs):
        kwargs.setdefault("status_code", 404)
        super().__init__(message, **kwargs)


class ServerError(AppError):
    """5xx or an unreadable response body."""
    def __init__(self, message: str = SERVER_ERROR_MESSAGE, **kwargs):
        super().__init__(message, **kwargs)


class IllegalTransitionError(ValidationError):
    """Local guard refused a status transition; no request was sent."""
    def __init__(self, current: str, requested: str, role: str):
        super().__init__(
            f"Cannot move order from {current} to {requested} as {role}",
            code="illegal_transition",
            status_code=None,
            details={"current": current, "requested": requested, "role": role},
        )


def server_message(body: Any) -> str | None:
    """Pull the human message out of an error body, if there is one."""
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message:
            return message
    return None


def classify_http_error(status_code: int, body: Any = None) -> AppError:
    """
    Map an HTTP error response to the taxonomy.

    Args:
        status_code: HTTP status of the response (>= 400)
        body: Decoded JSON body, or None when it was not JSON

    Returns:
        The AppError subclass instance to raise
    """
    message = server_message(body)
    code = body.get("code") if isinstance(body, dict) else None
    details = {"body": body} if body is not None else None

    if status_code == 401:
        return AuthError(message or "Session expired. Please log in again.", code=code, details=details)
    if status_code == 404:
        return NotFoundError(message or "Not found", code=code, details=details)
    if status_code >= 500:
        # Generic message; the server text is kept for logs only
        return ServerError(code=code, status_code=status_code, details=details)
    return ValidationError(message or "Request failed", code=code, status_code=status_code, details=details)
