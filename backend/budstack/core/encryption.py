"""
Encryption of tenant secrets at rest (AES-256-GCM)

Stored format is ``iv:authTag:ciphertext``, each part hex encoded. The AES key
is the SHA-256 digest of ENCRYPTION_KEY, so any passphrase length works.

Author: TM3
Date: 2025-11-04
"""
import os
import hashlib
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from budstack.core.config import settings

logger = logging.getLogger(__name__)

IV_LENGTH = 16
TAG_LENGTH = 16


class EncryptionError(Exception):
    pass


def _get_key() -> bytes:
    if not settings.ENCRYPTION_KEY:
        raise EncryptionError("ENCRYPTION_KEY is not configured")
    return hashlib.sha256(settings.ENCRYPTION_KEY.encode("utf-8")).digest()


def encrypt(text: str) -> str:
    """Encrypt a string. Empty input gives empty output."""
    if not text:
        return ""

    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(_get_key()).encrypt(iv, text.encode("utf-8"), None)
    # cryptography appends the tag to the ciphertext
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

    return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"


def is_encrypted(value: str) -> bool:
    parts = value.split(":") if value else []
    if len(parts) != 3:
        return False
    try:
        return len(bytes.fromhex(parts[0])) == IV_LENGTH and len(bytes.fromhex(parts[1])) == TAG_LENGTH
    except ValueError:
        return False


def decrypt(value: str) -> str:
    """
    Decrypt a value produced by encrypt().

    Values not in ``iv:tag:ciphertext`` form predate encryption and are
    returned unchanged.

    Raises:
        EncryptionError: wrong key or tampered ciphertext
    """
    if not value:
        return ""

    if not is_encrypted(value):
        logger.warning("Value is not in encrypted format, returning as-is")
        return value

    iv_hex, tag_hex, ciphertext_hex = value.split(":")
    try:
        plaintext = AESGCM(_get_key()).decrypt(
            bytes.fromhex(iv_hex),
            bytes.fromhex(ciphertext_hex) + bytes.fromhex(tag_hex),
            None,
        )
    except (InvalidTag, ValueError) as e:
        raise EncryptionError("Failed to decrypt value") from e

    return plaintext.decode("utf-8")


def mask_secret(value: str, visible: int = 4) -> str:
    """Masked representation for API responses (``********abcd``)"""
    if not value:
        return ""
    return "*" * 8 + value[-visible:]
