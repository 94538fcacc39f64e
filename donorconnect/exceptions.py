"""
Error types raised by the Donor Connect client.

Server error bodies come in a few shapes (``{"success": false,
"message": ...}``, ``{"error": ...}``, ``{"detail": ...}``);
``extract_error_message`` normalises them so callers only ever deal with
a message string.
"""
from typing import Any, Optional


class DonorConnectError(Exception):
    """Base class for every error raised by this package."""


class ImproperlyConfigured(DonorConnectError):
    pass


class ValidationError(DonorConnectError):
    pass


class NotAuthenticated(DonorConnectError):
    def __init__(self, role=None, message: Optional[str] = None):
        self.role = role
        label = getattr(role, 'label', None) or 'user'
        super().__init__(message or f'Please login as {label} to continue')


class PermissionDenied(DonorConnectError):
    pass


class ApiError(DonorConnectError):
    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class SessionExpired(ApiError):
    """Raised after a 401; the stored identity has already been cleared."""

    def __init__(self, role=None, login_route: str = '/login', payload: Any = None):
        super().__init__('Session expired. Please login again.', status_code=401, payload=payload)
        self.role = role
        self.login_route = login_route


def extract_error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        message = payload.get('message')
        if isinstance(message, str) and message:
            return message
        error = payload.get('error')
        if isinstance(error, str) and error:
            return error
        if isinstance(error, dict) and error.get('message'):
            return str(error['message'])
        detail = payload.get('detail')
        if detail:
            return str(detail)
    elif isinstance(payload, str) and payload.strip() and not payload.lstrip().startswith('<'):
        return payload.strip()[:200]
    return fallback
