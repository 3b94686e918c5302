"""
Tests for national-id encryption at rest.
"""
import pytest

from utils.encryption import decrypt_national_id, encrypt_national_id, mask_national_id


class TestEncryption:

    @pytest.mark.unit
    def test_ciphertext_hides_value(self):
        token = encrypt_national_id("35202-1234567-1")
        assert "1234567" not in token
        assert decrypt_national_id(token) == "35202-1234567-1"

    @pytest.mark.unit
    def test_nonce_makes_ciphertexts_differ(self):
        assert encrypt_national_id("35202-1234567-1") != encrypt_national_id("35202-1234567-1")

    @pytest.mark.unit
    def test_empty_values_pass_through(self):
        assert encrypt_national_id(None) is None
        assert encrypt_national_id("") is None
        assert decrypt_national_id(None) is None

    @pytest.mark.unit
    def test_tampered_ciphertext_raises_value_error(self):
        token = encrypt_national_id("35202-1234567-1")
        tampered = token[:-2] + ("00" if token[-2:] != "00" else "11")
        with pytest.raises(ValueError):
            decrypt_national_id(tampered)

    @pytest.mark.unit
    def test_non_hex_raises_value_error(self):
        with pytest.raises(ValueError):
            decrypt_national_id("zz-not-hex")


class TestMask:

    @pytest.mark.unit
    def test_keeps_last_four(self):
        assert mask_national_id("35202-1234567-1") == "*" * 11 + "67-1"

    @pytest.mark.unit
    def test_short_values_fully_masked(self):
        assert mask_national_id("123") == "***"
        assert mask_national_id(None) is None
