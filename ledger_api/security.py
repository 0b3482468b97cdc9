"""
Security utilities: JWT verification and field-level amount encryption.

This module centralizes all cryptographic operations so they're easy to
audit and update. Two concerns are handled here:

1. JWT TOKENS (JSON Web Tokens)
   - Tokens are issued by the auth service; this API only verifies them
   - The "sub" claim carries the owner's user id
   - Signed with SECRET_KEY using HS256 (HMAC-SHA256)

2. FIELD ENCRYPTION (AES-256-CBC)
   - Transaction amounts are never stored in plaintext
   - Stored format: "<iv hex>:<ciphertext hex>", with a fresh random 16-byte
     IV per value and PKCS7 padding
   - The 32-byte key is derived from ENCRYPTION_KEY: the raw UTF-8 bytes when
     the secret is exactly 32 bytes long, its SHA-256 digest otherwise. This
     derivation is part of the storage format. Changing it orphans every
     amount already in the database.

Legacy values:
  Rows written before encryption was introduced hold the bare number
  ("42.5"). With STRICT_DECRYPTION off (the default) a value without the
  ":" delimiter is returned unchanged; with it on, such a value raises
  DecryptionFailedError. Values that do contain the delimiter but fail to
  decrypt always raise.
"""

import hashlib
import math
import os
from datetime import datetime, timedelta, timezone

import structlog
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from jose import jwt

from ledger_api.config import settings
from ledger_api.exceptions import DecryptionFailedError, EncryptionFailedError

log = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# 1. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    The auth service owns token issuance in production; this exists for
    tooling and tests that need a token for a known owner.

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


# ---------------------------------------------------------------------------
# 2. Field Encryption (for transaction amounts at rest)
# ---------------------------------------------------------------------------

KEY_LENGTH = 32
IV_LENGTH = 16
DELIMITER = ":"


def derive_key(secret: str) -> bytes:
    """
    Turn the configured secret into a 32-byte AES-256 key.

    A secret that is already 32 bytes is used as is; anything else is hashed
    with SHA-256. Deterministic: the same secret always gives the same key.
    """
    raw = secret.encode("utf-8")
    if len(raw) == KEY_LENGTH:
        return raw
    return hashlib.sha256(raw).digest()


class FieldCipher:
    """
    Symmetric encryption of scalar field values.

    Args:
        secret: The server-held secret (settings.ENCRYPTION_KEY).
        strict: Reject values without the delimiter instead of treating them
            as legacy plaintext.
    """

    def __init__(self, secret: str, strict: bool = False):
        self._key = derive_key(secret)
        self.strict = strict

    def encrypt_text(self, plaintext: str) -> str:
        """
        Encrypt a string into "<iv hex>:<ciphertext hex>".

        Raises:
            EncryptionFailedError: If the value cannot be encrypted.
        """
        try:
            iv = os.urandom(IV_LENGTH)
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        except (TypeError, ValueError, AttributeError) as exc:
            log.error("encryption_failed", error_type=type(exc).__name__)
            raise EncryptionFailedError() from exc
        return f"{iv.hex()}{DELIMITER}{ciphertext.hex()}"

    def decrypt_text(self, value: str) -> str:
        """
        Decrypt a value produced by encrypt_text.

        Raises:
            DecryptionFailedError: If the value is malformed, was encrypted
                with another key, or is legacy plaintext in strict mode.
        """
        if not isinstance(value, str):
            raise DecryptionFailedError("Encrypted value must be a string")

        if DELIMITER not in value:
            if self.strict:
                raise DecryptionFailedError("Invalid encrypted text format")
            log.warning("legacy_plaintext_value")
            return value

        iv_hex, _, cipher_hex = value.partition(DELIMITER)
        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(cipher_hex)
            if len(iv) != IV_LENGTH or not ciphertext:
                raise ValueError("invalid iv or empty ciphertext")
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError as exc:
            # UnicodeDecodeError is a ValueError too
            raise DecryptionFailedError() from exc

    def encrypt_number(self, number: float | int) -> str:
        return self.encrypt_text(str(number))

    def decrypt_number(self, value: str) -> float:
        """
        Decrypt a numeric field. Never raises.

        A corrupt, undecryptable or non-numeric value degrades to 0.0 so a
        single bad row cannot break a whole listing.
        """
        try:
            number = float(self.decrypt_text(value))
        except (DecryptionFailedError, ValueError, TypeError) as exc:
            log.warning("amount_decrypt_fallback", error_type=type(exc).__name__)
            return 0.0
        if not math.isfinite(number):
            log.warning("amount_decrypt_fallback", error_type="NonFiniteValue")
            return 0.0
        return number


# Process-wide cipher built from settings. Import the functions below rather
# than constructing new ciphers in application code.
field_cipher = FieldCipher(settings.ENCRYPTION_KEY, strict=settings.STRICT_DECRYPTION)


def encrypt_text(plaintext: str) -> str:
    return field_cipher.encrypt_text(plaintext)


def decrypt_text(value: str) -> str:
    return field_cipher.decrypt_text(value)


def encrypt_number(number: float | int) -> str:
    return field_cipher.encrypt_number(number)


def decrypt_number(value: str) -> float:
    return field_cipher.decrypt_number(value)
