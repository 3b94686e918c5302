"""
Tests for input validation utilities.

Tests: validate_uuid, validate_phone, validate_national_id, validated_event
"""
import uuid

import pytest

from domain.enums import OrderEvent
from domain.errors import ValidationError
from utils.validators import (
    validate_national_id,
    validate_phone,
    validate_uuid,
    validated_event,
)


class TestValidateUuid:

    @pytest.mark.unit
    def test_valid_uuid_passes(self):
        value = str(uuid.uuid4())
        assert validate_uuid(value) == value

    @pytest.mark.unit
    def test_empty_raises_400(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_uuid("")
        assert exc_info.value.status_code == 400
        assert "required" in exc_info.value.message

    @pytest.mark.unit
    def test_garbage_names_the_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_uuid("SO-1000", field="orderUuid")
        assert "orderUuid" in exc_info.value.message


class TestValidatePhone:

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["+923001234567", "03001234567", " 0300 1234567 ", "042-1234567"])
    def test_accepted(self, value):
        assert validate_phone(value) == value.strip()

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["", "12345", "phone", "+", "1" * 25])
    def test_rejected(self, value):
        with pytest.raises(ValidationError):
            validate_phone(value)

    @pytest.mark.unit
    def test_field_name_in_message(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_phone("x", field="alternatePhone")
        assert "alternatePhone" in exc_info.value.message


class TestValidateNationalId:

    @pytest.mark.unit
    def test_empty_is_none(self):
        assert validate_national_id(None) is None
        assert validate_national_id("") is None

    @pytest.mark.unit
    def test_digits_and_dashes(self):
        assert validate_national_id(" 35202-1234567-1 ") == "35202-1234567-1"

    @pytest.mark.unit
    def test_too_long(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_national_id("1" * 16)
        assert "15 characters" in exc_info.value.message

    @pytest.mark.unit
    def test_letters_rejected(self):
        with pytest.raises(ValidationError):
            validate_national_id("AB123")


class TestValidatedEvent:

    @pytest.mark.unit
    def test_case_and_whitespace_insensitive(self):
        assert validated_event(" canceled ") is OrderEvent.CANCELED

    @pytest.mark.unit
    def test_unknown_lists_allowed_events(self):
        with pytest.raises(ValidationError) as exc_info:
            validated_event("REFUNDED")
        assert exc_info.value.details["allowed"] == [e.value for e in OrderEvent]
