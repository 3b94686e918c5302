"""
Standard API response models and helpers for consistent response formatting.

Every endpoint returns the same envelope:
- Success: { "status": true, "code": 200, "message": "...", "data": <payload>, "meta": {...}? }
- Error:   { "status": false, "code": 404, "message": "...", "data": { "error": "...", "details": {...} } }
"""
from typing import Any, Generic, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorData(BaseModel):
    """Payload carried by error envelopes."""
    error: str = Field(..., description="Error code (e.g., 'not_found', 'validation_error')")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")


class Envelope(BaseModel, Generic[T]):
    """Uniform result envelope."""
    status: bool = Field(..., description="True on success, false on error")
    code: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Human-readable outcome")
    data: T | None = Field(default=None, description="Response payload")
    meta: dict[str, Any] | None = Field(default=None, description="Optional metadata (pagination, etc.)")


def success_response(
    data: Any,
    message: str = "OK",
    code: int = 200,
    meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized success response.

    Args:
        data: The response payload
        message: Human-readable outcome
        code: HTTP status code mirrored in the body
        meta: Optional metadata (pagination, timestamps, etc.)

    Returns:
        dict: { "status": true, "code": <code>, "message": <message>, "data": <data> }
    """
    response = {"status": True, "code": code, "message": message, "data": data}
    if meta:
        response["meta"] = meta
    return response


def error_response(
    code: int,
    message: str,
    error: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a standardized error response."""
    return {
        "status": False,
        "code": code,
        "message": message,
        "data": {"error": error, "details": details or None},
    }


def paginated_response(
    items: list[Any],
    limit: int,
    offset: int = 0,
    total: int | None = None,
    message: str = "OK",
) -> dict[str, Any]:
    """
    Create a standardized paginated response.

    Args:
        items: List of items for this page
        limit: Number of items per page
        offset: Offset of the first item
        total: Total number of items (if None, uses len(items))

    Returns:
        dict: envelope with meta { "limit", "offset", "total", "hasMore" }
    """
    if total is None:
        total = len(items)

    meta = {
        "limit": limit,
        "offset": offset,
        "total": total,
        "hasMore": (offset + limit) < total,
    }

    return success_response(data=items, message=message, meta=meta)
