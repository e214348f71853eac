"""Tests for the PII codec and masking helpers."""

import hashlib

import pytest

from intake_engine.config import Settings
from intake_engine.exceptions import ConfigurationError, IntegrityError
from intake_engine.pii import (
    IV_LENGTH,
    MIN_BLOB_LENGTH,
    TAG_LENGTH,
    PIICodec,
    derive_key,
    generate_key,
    mask_account_number,
    mask_ssn,
)

from conftest import TEST_KEY


class TestDeriveKey:
    def test_hex_key_is_decoded(self):
        assert derive_key(TEST_KEY) == bytes.fromhex(TEST_KEY)

    def test_other_secret_is_hashed(self):
        secret = "correct horse battery staple"

        assert derive_key(secret) == hashlib.sha256(secret.encode()).digest()

    def test_63_hex_chars_are_hashed_not_decoded(self):
        secret = TEST_KEY[:-1]

        assert derive_key(secret) == hashlib.sha256(secret.encode()).digest()

    @pytest.mark.parametrize("secret", [None, "", "   "])
    def test_missing_secret_raises(self, secret):
        with pytest.raises(ConfigurationError):
            derive_key(secret)


class TestGenerateKey:
    def test_returns_64_hex_chars(self):
        key = generate_key()

        assert len(key) == 64
        assert bytes.fromhex(key)

    def test_keys_are_random(self):
        assert generate_key() != generate_key()


class TestPIICodecConstruction:
    def test_rejects_wrong_key_length(self):
        with pytest.raises(ConfigurationError):
            PIICodec(b"too short")

    def test_from_settings_uses_configured_key(self):
        settings = Settings(data_encryption_key=TEST_KEY)
        codec = PIICodec.from_settings(settings)
        other = PIICodec.from_secret(TEST_KEY)

        assert other.decrypt(codec.encrypt("123456789")) == "123456789"

    def test_from_settings_without_key_raises(self):
        with pytest.raises(ConfigurationError):
            PIICodec.from_settings(Settings(data_encryption_key=None))


class TestEncryptDecrypt:
    def test_round_trip(self, codec):
        assert codec.decrypt(codec.encrypt("123-45-6789")) == "123-45-6789"

    def test_round_trip_unicode(self, codec):
        assert codec.decrypt(codec.encrypt("Zoë Ñúñez")) == "Zoë Ñúñez"

    def test_same_plaintext_encrypts_differently(self, codec):
        first = codec.encrypt("123-45-6789")
        second = codec.encrypt("123-45-6789")

        assert first != second
        assert first[:IV_LENGTH] != second[:IV_LENGTH]

    def test_blob_layout(self, codec):
        blob = codec.encrypt("123456")

        assert len(blob) == IV_LENGTH + len("123456") + TAG_LENGTH

    def test_empty_plaintext_is_rejected(self, codec):
        with pytest.raises(ValueError):
            codec.encrypt("")

    @pytest.mark.parametrize("length", [0, 1, IV_LENGTH, MIN_BLOB_LENGTH - 1])
    def test_short_blob_raises_integrity_error(self, codec, length):
        with pytest.raises(IntegrityError):
            codec.decrypt(b"\x00" * length)

    def test_any_flipped_byte_raises_integrity_error(self, codec):
        blob = codec.encrypt("123-45-6789")

        for position in range(len(blob)):
            tampered = bytearray(blob)
            tampered[position] ^= 0x01
            with pytest.raises(IntegrityError):
                codec.decrypt(bytes(tampered))

    def test_wrong_key_raises_integrity_error(self, codec):
        blob = codec.encrypt("123-45-6789")
        other = PIICodec.from_secret("a different secret")

        with pytest.raises(IntegrityError):
            other.decrypt(blob)


class TestSafeHelpers:
    @pytest.mark.parametrize("value", [None, "", "   ", "\t\n"])
    def test_safe_encrypt_maps_blank_to_none(self, codec, value):
        assert codec.safe_encrypt(value) is None

    def test_safe_encrypt_encrypts_value(self, codec):
        blob = codec.safe_encrypt("987654")

        assert blob is not None
        assert codec.decrypt(blob) == "987654"

    def test_safe_decrypt_passes_none_through(self, codec):
        assert codec.safe_decrypt(None) is None

    def test_safe_decrypt_still_raises_on_tampering(self, codec):
        blob = bytearray(codec.encrypt("987654"))
        blob[-1] ^= 0xFF

        with pytest.raises(IntegrityError):
            codec.safe_decrypt(bytes(blob))


class TestMasking:
    def test_mask_ssn(self):
        assert mask_ssn("123-45-6789") == "***-**-6789"

    @pytest.mark.parametrize("value", [None, "", "123"])
    def test_mask_ssn_short_input(self, value):
        assert mask_ssn(value) == "***-**-****"

    def test_mask_account_number(self):
        assert mask_account_number("000123456789") == "****6789"

    @pytest.mark.parametrize("value", [None, "", "12"])
    def test_mask_account_number_short_input(self, value):
        assert mask_account_number(value) == "****"
