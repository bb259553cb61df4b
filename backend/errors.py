"""Typed application errors.

Services raise these; server.py turns every one of them into the
{"success": false, "message": ...} envelope with the matching status code.
"""
from typing import Optional, Dict


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""
    kind = "error"
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        return {"success": False, "kind": self.kind, "message": self.message}


class ValidationError(AppError):
    kind = "validation"
    status_code = 400


class AuthenticationError(AppError):
    kind = "authentication"
    status_code = 401


class PermissionDeniedError(AppError):
    kind = "permission_denied"
    status_code = 403


class UsageLimitError(AppError):
    """Free-tier monthly quota reached for a metered action."""
    kind = "usage_limit"
    status_code = 403

    def __init__(self, action: str, limit: int, message: str):
        self.action = action
        self.limit = limit
        super().__init__(message)


class NotFoundError(AppError):
    kind = "not_found"
    status_code = 404


class ConflictError(AppError):
    kind = "conflict"
    status_code = 409


class RateLimitError(AppError):
    kind = "rate_limited"
    status_code = 429


class ServiceUnavailableError(AppError):
    kind = "service_unavailable"
    status_code = 503


class UpstreamError(AppError):
    """A third-party integration (payment, AI, OAuth) failed."""
    kind = "upstream"
    status_code = 500
