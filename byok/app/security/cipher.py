# byok/app/security/cipher.py
"""
Symmetric encryption of provider API keys at rest.

This module handles:
- Device-local key generation (Fernet, 256 bits of key material)
- Encrypting a raw API key into an opaque token
- Decrypting a token, degrading to None on ANY failure

Fernet = AES-128-CBC + HMAC-SHA256 with a random IV per token, so the same
API key encrypts to a different token every time and tampering is detected.
"""
import binascii
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken


def generate_encryption_key() -> str:
    """
    Generate a new random device key.

    Returns:
        urlsafe base64 string encoding 32 random bytes
    """
    return Fernet.generate_key().decode("utf-8")


def encrypt(value: str, key: str) -> str:
    """
    Encrypt a plaintext string under the given key.

    Args:
        value: The raw secret (API key)
        key: Key from generate_encryption_key()

    Returns:
        Fernet token as text
    """
    token = Fernet(key.encode("utf-8")).encrypt(value.encode("utf-8"))
    return token.decode("utf-8")


def decrypt(token: str, key: str) -> Optional[str]:
    """
    Decrypt a token produced by encrypt().

    Never raises: a wrong key, a malformed key, a corrupted or truncated token
    and non-UTF-8 plaintext all return None so callers can report the
    credential as invalid.
    """
    try:
        raw = Fernet(key.encode("utf-8")).decrypt(token.encode("utf-8"))
        return raw.decode("utf-8")
    except (InvalidToken, ValueError, TypeError, binascii.Error):
        return None
