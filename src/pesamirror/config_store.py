"""
Push configuration store.

Durable storage holds either plaintext config JSON or a vault envelope.
A separate session store caches decrypted plaintext so an unlocked session
does not prompt again. Crypto and shape failures never escape this module
as exceptions: they come back as None / False.
"""

import json
import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from pesamirror import vault
from pesamirror.errors import DecryptionFailed, StorageShapeError
from pesamirror.models.config import PEM_MARKER, PushConfig, ServiceCredential
from pesamirror.storage import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "pesamirror_fcm_config"
SESSION_KEY = "pesamirror_fcm_config_session"
REDACTED = "*** REDACTED ***"

_PRIVATE_KEY_RE = re.compile(r'"private_key"\s*:\s*"([^"\\]*(?:\\.[^"\\]*)*)"')


def parse_push_config(raw: Optional[str]) -> Optional[PushConfig]:
    if not raw:
        return None
    try:
        return PushConfig.model_validate_json(raw)
    except ValidationError:
        return None


def validate_service_account_json(text: str, device_token: str) -> PushConfig:
    """Validate user-supplied settings before saving. Messages are user-facing."""
    try:
        data: Any = json.loads(text)
    except ValueError:
        raise StorageShapeError("Invalid JSON — check the format and try again.", code="invalid_json")
    if not isinstance(data, dict):
        raise StorageShapeError("Invalid JSON — check the format and try again.", code="invalid_json")
    if not all(isinstance(data.get(k), str) and data.get(k) for k in ("project_id", "private_key", "client_email")):
        raise StorageShapeError(
            "Service account must have project_id, private_key, and client_email.",
            code="missing_fields",
        )
    if PEM_MARKER not in data["private_key"]:
        raise StorageShapeError("private_key does not look like a PEM key.", code="invalid_pem")
    if not device_token or not device_token.strip():
        raise StorageShapeError("Device token is required. Copy it from the Android app.", code="missing_token")
    try:
        credential = ServiceCredential.model_validate(data)
    except ValidationError as e:
        raise StorageShapeError(f"Invalid service account: {e.errors()[0]['msg']}")
    return PushConfig(serviceAccount=credential, deviceToken=device_token.strip())


def redact_private_key(json_text: str) -> str:
    """Hide the private_key value of a service-account JSON string for display."""
    m = _PRIVATE_KEY_RE.search(json_text)
    if not m:
        return json_text
    return json_text.replace(m.group(0), f'"private_key": "{REDACTED}"', 1)


class ConfigStore:
    def __init__(self, durable: KeyValueStore, session: Optional[KeyValueStore] = None):
        self._durable = durable
        self._session = session if session is not None else MemoryStore()

    async def save(self, config: PushConfig, passphrase: Optional[str] = None) -> None:
        """Persist config; encrypted at rest when a non-blank passphrase is given."""
        plain = config.to_json()
        passphrase = passphrase.strip() if passphrase else ""
        if passphrase:
            envelope = await vault.encrypt(plain, passphrase)
            self._durable.set(STORAGE_KEY, envelope.to_json())
            logger.info("Saved push config (encrypted)")
        else:
            self._durable.set(STORAGE_KEY, plain)
            logger.info("Saved push config (plaintext)")
        self._session.set(SESSION_KEY, plain)

    def load(self) -> Optional[PushConfig]:
        """Session cache first, then durable plaintext. Locked config yields None."""
        cached = parse_push_config(self._session.get(SESSION_KEY))
        if cached:
            return cached
        raw = self._durable.get(STORAGE_KEY)
        if not raw or vault.is_envelope(raw):
            return None
        return parse_push_config(raw)

    def is_encrypted(self) -> bool:
        raw = self._durable.get(STORAGE_KEY)
        return raw is not None and vault.is_envelope(raw)

    async def unlock(self, passphrase: str) -> bool:
        """Decrypt the stored envelope into the session cache. False on any failure."""
        raw = self._durable.get(STORAGE_KEY)
        if not raw or not vault.is_envelope(raw):
            return False
        try:
            envelope = vault.parse_envelope(raw)
            plain = await vault.decrypt(envelope, passphrase.strip())
        except (DecryptionFailed, ValidationError):
            logger.info("Unlock failed")
            return False
        if parse_push_config(plain) is None:
            logger.info("Unlock failed")
            return False
        self._session.set(SESSION_KEY, plain)
        logger.info("Push config unlocked for this session")
        return True

    def clear(self) -> None:
        self._durable.remove(STORAGE_KEY)
        self._session.remove(SESSION_KEY)
        logger.info("Cleared push config")
