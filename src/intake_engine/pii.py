"""Field-level authenticated encryption for PII (SSNs, IP PINs, bank numbers).

Blobs use AES-256-GCM with a random 96-bit IV and a 128-bit tag, laid out as::

    IV (12 bytes) || ciphertext || tag (16 bytes)

The codec holds its key for the lifetime of the process. Build it once at
startup with ``PIICodec.from_secret`` (or ``PIICodec.from_settings``); a
missing or malformed key raises ConfigurationError there, not per request.

Usage:
    codec = PIICodec.from_secret(settings.data_encryption_key)
    blob = codec.safe_encrypt(form_value)      # None for empty input
    ssn = codec.decrypt(blob)                  # IntegrityError if tampered
"""

from __future__ import annotations

import hashlib
import os
import re
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from intake_engine.config import Settings
from intake_engine.exceptions import ConfigurationError, IntegrityError

IV_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32
MIN_BLOB_LENGTH = IV_LENGTH + TAG_LENGTH + 1

_HEX_KEY_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


def derive_key(secret: str | None) -> bytes:
    """Turn the configured secret into a 32-byte AES key.

    64 hex characters are decoded directly; any other non-empty secret is
    hashed with SHA-256.

    Raises:
        ConfigurationError: If the secret is absent or blank.
    """
    if secret is None or not secret.strip():
        raise ConfigurationError(
            "Data encryption key is not configured. "
            "Set INTAKE_DATA_ENCRYPTION_KEY (generate one with `intake generate-key`)."
        )
    if _HEX_KEY_PATTERN.match(secret):
        return bytes.fromhex(secret)
    return hashlib.sha256(secret.encode("utf-8")).digest()


def generate_key() -> str:
    """Return a fresh random key as 64 hex characters."""
    return secrets.token_hex(KEY_LENGTH)


class PIICodec:
    """AES-256-GCM codec for a single process-wide key. Holds no mutable state."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH:
            raise ConfigurationError(
                f"Data encryption key must be {KEY_LENGTH} bytes, got {len(key)}"
            )
        self._aead = AESGCM(key)

    @classmethod
    def from_secret(cls, secret: str | None) -> PIICodec:
        return cls(derive_key(secret))

    @classmethod
    def from_settings(cls, settings: Settings) -> PIICodec:
        return cls.from_secret(settings.data_encryption_key)

    def encrypt(self, plaintext: str) -> bytes:
        """Encrypt a non-empty string into an ``IV || ciphertext || tag`` blob."""
        if not plaintext:
            raise ValueError("Cannot encrypt an empty value")
        iv = os.urandom(IV_LENGTH)
        # AESGCM returns ciphertext with the tag appended
        return iv + self._aead.encrypt(iv, plaintext.encode("utf-8"), None)

    def decrypt(self, blob: bytes) -> str:
        """Decrypt a blob produced by ``encrypt``.

        Raises:
            IntegrityError: If the blob is too short or any byte was altered.
        """
        if blob is None or len(blob) < MIN_BLOB_LENGTH:
            raise IntegrityError("Encrypted value is truncated")
        blob = bytes(blob)
        iv, sealed = blob[:IV_LENGTH], blob[IV_LENGTH:]
        try:
            plaintext = self._aead.decrypt(iv, sealed, None)
        except InvalidTag as exc:
            raise IntegrityError("Encrypted value failed authentication") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IntegrityError("Encrypted value is not valid text") from exc

    def safe_encrypt(self, value: str | None) -> bytes | None:
        """Encrypt a form value, mapping absent or blank input to None."""
        if value is None or not value.strip():
            return None
        return self.encrypt(value)

    def safe_decrypt(self, blob: bytes | None) -> str | None:
        """Decrypt a stored value, passing None through. Integrity errors still raise."""
        if not blob:
            return None
        return self.decrypt(blob)


def mask_ssn(ssn: str | None) -> str:
    """Mask an SSN for display as ``***-**-1234``."""
    if not ssn or len(ssn) < 4:
        return "***-**-****"
    return f"***-**-{ssn[-4:]}"


def mask_account_number(account_number: str | None) -> str:
    """Mask a bank number for display as ``****1234``."""
    if not account_number or len(account_number) < 4:
        return "****"
    return f"****{account_number[-4:]}"
