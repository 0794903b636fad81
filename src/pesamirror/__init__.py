"""
pesamirror — trigger mobile-money USSD sessions on a remote device.

Passphrase-encrypted FCM credential storage, an RS256/OAuth2 push
dispatcher, and a voice command orchestrator with spoken confirmation.
"""

from pesamirror.client import PesaMirror, AsyncPesaMirror, TriggerResult
from pesamirror.config_store import ConfigStore
from pesamirror.push import PushDispatcher, AccessTokenCache
from pesamirror.voice import VoiceCommandOrchestrator, VoiceSessionState
from pesamirror.errors import (
    PesaMirrorError,
    DecryptionFailed,
    StorageShapeError,
    InvalidIntent,
    NetworkError,
    TokenExchangeFailed,
    DispatchFailed,
    CaptureFailed,
)

__version__ = "0.1.0"
__all__ = [
    "PesaMirror",
    "AsyncPesaMirror",
    "TriggerResult",
    "ConfigStore",
    "PushDispatcher",
    "AccessTokenCache",
    "VoiceCommandOrchestrator",
    "VoiceSessionState",
    "PesaMirrorError",
    "DecryptionFailed",
    "StorageShapeError",
    "InvalidIntent",
    "NetworkError",
    "TokenExchangeFailed",
    "DispatchFailed",
    "CaptureFailed",
]
