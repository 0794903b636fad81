"""
Credential vault — passphrase-based encryption for data at rest.

AES-256-GCM with a key derived from the passphrase via PBKDF2-HMAC-SHA256.
Salt and IV are fresh per encryption. All binary fields are base64url.
"""

import asyncio
import json
import logging
import os
from typing import Any, Mapping, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from pesamirror.encoding import b64url_decode, b64url_encode
from pesamirror.errors import DecryptionFailed
from pesamirror.models.envelope import ENVELOPE_VERSION, EncryptedEnvelope

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000
SALT_LENGTH = 16
IV_LENGTH = 12
KEY_LENGTH = 32


def derive_key(passphrase: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def _encrypt_sync(plaintext: str, passphrase: str) -> EncryptedEnvelope:
    salt = os.urandom(SALT_LENGTH)
    iv = os.urandom(IV_LENGTH)
    key = derive_key(passphrase, salt)
    ciphertext = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return EncryptedEnvelope(
        ciphertext=b64url_encode(ciphertext),
        iv=b64url_encode(iv),
        salt=b64url_encode(salt),
    )


def _decrypt_sync(envelope: EncryptedEnvelope, passphrase: str) -> str:
    try:
        salt = b64url_decode(envelope.salt)
        iv = b64url_decode(envelope.iv)
        ciphertext = b64url_decode(envelope.ciphertext)
        key = derive_key(passphrase, salt)
        return AESGCM(key).decrypt(iv, ciphertext, None).decode("utf-8")
    except (InvalidTag, ValueError, UnicodeDecodeError) as e:
        # ValueError covers bad base64 and an empty/oversized IV.
        logger.debug("Envelope decryption failed: %s", type(e).__name__)
        raise DecryptionFailed() from None


async def encrypt(plaintext: str, passphrase: str) -> EncryptedEnvelope:
    """Encrypt ``plaintext`` under ``passphrase``. Key derivation runs off the event loop."""
    return await asyncio.to_thread(_encrypt_sync, plaintext, passphrase)


async def decrypt(envelope: EncryptedEnvelope, passphrase: str) -> str:
    """Decrypt an envelope. Raises DecryptionFailed on wrong passphrase or tampering."""
    return await asyncio.to_thread(_decrypt_sync, envelope, passphrase)


def is_envelope(raw: Union[str, Mapping[str, Any], None]) -> bool:
    """Structural check only: version tag plus three string fields."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return False
    if not isinstance(raw, Mapping):
        return False
    v = raw.get("v")
    return (
        v == ENVELOPE_VERSION
        and not isinstance(v, bool)
        and all(isinstance(raw.get(k), str) for k in ("enc", "iv", "salt"))
    )


def parse_envelope(raw: str) -> EncryptedEnvelope:
    """Parse stored envelope JSON. Caller should check ``is_envelope`` first."""
    return EncryptedEnvelope.model_validate_json(raw)
