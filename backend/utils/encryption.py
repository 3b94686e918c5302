"""
National-id encryption at rest.

Uses a PyNaCl SecretBox (XSalsa20-Poly1305) keyed from settings. Ciphertext
is stored hex-encoded with the random nonce prepended by SecretBox itself.
"""
import logging

from nacl.exceptions import CryptoError
from nacl.secret import SecretBox

from config import settings

logger = logging.getLogger(__name__)


def _box() -> SecretBox:
    return SecretBox(settings.national_id_key_bytes)


def encrypt_national_id(value: str | None) -> str | None:
    """Encrypt a national id. Empty input stays empty."""
    if not value:
        return None
    return _box().encrypt(value.encode("utf-8")).hex()


def decrypt_national_id(token: str | None) -> str | None:
    """Decrypt a stored national id. Raises ValueError when the ciphertext is not ours."""
    if not token:
        return None
    try:
        return _box().decrypt(bytes.fromhex(token)).decode("utf-8")
    except (CryptoError, ValueError) as e:
        logger.error(f"National id decryption failed: {e}")
        raise ValueError("Stored national id could not be decrypted") from e


def mask_national_id(value: str | None) -> str | None:
    """Keep the last four characters visible."""
    if not value:
        return None
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]
