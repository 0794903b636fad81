"""
PesaMirror error types.

Crypto and storage errors are recovered into False/None by the config store.
Network errors propagate to the caller with status and body attached.
"""

from typing import Any, Optional


class PesaMirrorError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class DecryptionFailed(PesaMirrorError):
    """Wrong passphrase or corrupted envelope. Deliberately carries no reason."""

    def __init__(self, message: str = "Decryption failed"):
        super().__init__("decryption_failed", message)


class StorageShapeError(PesaMirrorError):
    def __init__(self, message: str, code: str = "storage_shape_error"):
        super().__init__(code, message)


class InvalidIntent(PesaMirrorError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__("invalid_intent", message, {"field": field} if field else None)
        self.field = field


class NetworkError(PesaMirrorError):
    def __init__(self, code: str, prefix: str, status: int, body: str):
        super().__init__(code, f"{prefix} {status}: {body}", {"status": status, "body": body})
        self.status = status
        self.body = body


class TokenExchangeFailed(NetworkError):
    def __init__(self, status: int, body: str):
        super().__init__("token_exchange_failed", "OAuth2 token error", status, body)


class DispatchFailed(NetworkError):
    def __init__(self, status: int, body: str):
        super().__init__("dispatch_failed", "FCM error", status, body)


class CaptureFailed(PesaMirrorError):
    def __init__(self, message: str = "Could not capture audio."):
        super().__init__("capture_failed", message)
