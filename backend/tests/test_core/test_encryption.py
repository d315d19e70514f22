"""
Unit tests for secret encryption at rest

Author: TM3
Date: 2025-11-17
"""
import pytest
from unittest.mock import patch

from budstack.core import encryption
from budstack.core.config import settings
from budstack.core.encryption import EncryptionError


@pytest.fixture(autouse=True)
def encryption_key():
    with patch.object(settings, 'ENCRYPTION_KEY', 'unit-test-passphrase'):
        yield


class TestEncryption:

    def test_encrypted_value_has_three_hex_parts(self):
        value = encryption.encrypt("sk_live_secret")

        iv, tag, ciphertext = value.split(":")
        assert len(bytes.fromhex(iv)) == encryption.IV_LENGTH
        assert len(bytes.fromhex(tag)) == encryption.TAG_LENGTH
        assert bytes.fromhex(ciphertext)
        assert encryption.is_encrypted(value)

    def test_decrypt_returns_original_text(self):
        assert encryption.decrypt(encryption.encrypt("sk_live_secret")) == "sk_live_secret"

    def test_same_text_encrypts_differently_each_time(self):
        assert encryption.encrypt("same") != encryption.encrypt("same")

    def test_empty_values_pass_through(self):
        assert encryption.encrypt("") == ""
        assert encryption.decrypt("") == ""

    def test_legacy_plaintext_is_returned_unchanged(self):
        assert encryption.decrypt("plain-old-secret") == "plain-old-secret"

    def test_tampered_ciphertext_raises(self):
        iv, tag, ciphertext = encryption.encrypt("sk_live_secret").split(":")
        flipped = format(int(ciphertext[:2], 16) ^ 0xFF, '02x') + ciphertext[2:]

        with pytest.raises(EncryptionError):
            encryption.decrypt(f"{iv}:{tag}:{flipped}")

    def test_wrong_key_raises(self):
        value = encryption.encrypt("sk_live_secret")

        with patch.object(settings, 'ENCRYPTION_KEY', 'another-passphrase'):
            with pytest.raises(EncryptionError):
                encryption.decrypt(value)

    def test_missing_key_raises(self):
        with patch.object(settings, 'ENCRYPTION_KEY', ''):
            with pytest.raises(EncryptionError):
                encryption.encrypt("anything")

    def test_mask_secret_keeps_last_four(self):
        assert encryption.mask_secret("pk_live_abcd1234") == "********1234"
        assert encryption.mask_secret("") == ""
