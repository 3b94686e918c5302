"""
Input validation utilities for the order lifecycle endpoints.

Validators raise domain ValidationError so every rejection leaves through the
same response envelope.
"""
import re
import uuid

from fastapi import Path

from domain.enums import OrderEvent
from domain.errors import ValidationError

_PHONE = re.compile(r"^\+?[0-9][0-9\- ]{6,19}$")
_NATIONAL_ID = re.compile(r"^[0-9][0-9\-]{0,14}$")

MAX_NATIONAL_ID_LENGTH = 15


def validate_uuid(value: str, field: str = "uuid") -> str:
    """Reject anything that is not a canonical UUID string."""
    if not value:
        raise ValidationError("value is required", field=field)
    try:
        uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"'{value}' is not a valid UUID", field=field)
    return str(value)


def validate_phone(value: str, field: str = "personalPhone") -> str:
    if not value or not _PHONE.match(value.strip()):
        raise ValidationError("expected 7-20 digits, optionally prefixed with '+'", field=field)
    return value.strip()


def validate_national_id(value: str | None) -> str | None:
    """National ids are digits and dashes, at most 15 characters."""
    if value is None or value == "":
        return None
    value = value.strip()
    if len(value) > MAX_NATIONAL_ID_LENGTH:
        raise ValidationError(
            f"should be maximum {MAX_NATIONAL_ID_LENGTH} characters", field="nationalId"
        )
    if not _NATIONAL_ID.match(value):
        raise ValidationError("only digits and dashes are allowed", field="nationalId")
    return value


def validated_event(event: str = Path(..., description="Business event name")) -> OrderEvent:
    """FastAPI dependency for validating event path parameters."""
    return OrderEvent.parse(event)


def validated_order_uuid(order_uuid: str = Path(..., description="Order UUID")) -> str:
    """FastAPI dependency for validating order UUID path parameters."""
    return validate_uuid(order_uuid, field="order_uuid")
