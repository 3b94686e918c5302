"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to the response envelope by the exception handlers
in main.py. Only InternalError is logged with full context; the rest are
expected outcomes reported back to the caller.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    code = "domain_error"

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """Malformed or unknown input (400)."""
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class NotFoundError(DomainError):
    """Referenced entity missing or soft-deleted (404)."""
    code = "not_found"

    def __init__(self, resource_type: str, identifier, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class BusinessRuleError(DomainError):
    """Request conflicts with current state (409)."""
    code = "business_rule_violation"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class InternalError(DomainError):
    """Storage or transaction failure (500). Message is generic on purpose."""
    code = "internal_error"

    def __init__(self, message: str = "Internal server error", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


class UnauthorizedError(DomainError):
    """Missing or invalid access token (401)."""
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class PermissionDeniedError(DomainError):
    """Authenticated but not allowed (403)."""
    code = "permission_denied"

    def __init__(self, message: str = "Permission denied", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class RateLimitedError(DomainError):
    """Too many anonymous requests from one client (429)."""
    code = "rate_limited"

    def __init__(self, max_requests: int, window_seconds: int):
        super().__init__(
            f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds. Try again later.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"limit": max_requests, "windowSeconds": window_seconds},
        )
        self.headers = {"Retry-After": str(window_seconds)}
