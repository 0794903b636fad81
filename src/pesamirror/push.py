"""
Remote push via the Firebase Cloud Messaging HTTP v1 API.

A service-account RSA key signs a short-lived JWT assertion, which is
exchanged at the OAuth2 token endpoint for a bearer token (cached), which
authorizes the FCM send call. The Android side receives a data-only
message, so it is delivered even when the app process is not running.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from pesamirror.encoding import b64url_encode
from pesamirror.errors import DispatchFailed, StorageShapeError, TokenExchangeFailed
from pesamirror.models.config import PushConfig, ServiceCredential
from pesamirror.transport.http import HttpClient

logger = logging.getLogger(__name__)

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

ASSERTION_LIFETIME_S = 3600
# Tokens live 60 min; refresh at 55 to allow for clock skew and in-flight use.
TOKEN_CACHE_TTL_MS = 55 * 60 * 1000

Clock = Callable[[], int]


def system_clock() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CachedAccessToken:
    subject_email: str
    token: str
    expires_at_ms: int


class AccessTokenCache:
    """Single-entry bearer token cache keyed by service-account email."""

    def __init__(self, clock: Clock = system_clock):
        self._clock = clock
        self._entry: Optional[CachedAccessToken] = None
        self.lock = asyncio.Lock()

    def now(self) -> int:
        return self._clock()

    def get(self, subject_email: str) -> Optional[str]:
        entry = self._entry
        if entry and entry.subject_email == subject_email and self._clock() < entry.expires_at_ms:
            return entry.token
        return None

    def put(self, subject_email: str, token: str, issued_at_ms: int) -> None:
        self._entry = CachedAccessToken(subject_email, token, issued_at_ms + TOKEN_CACHE_TTL_MS)

    def clear(self) -> None:
        self._entry = None


def _load_rsa_key(pem: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError) as e:
        raise StorageShapeError(f"private_key could not be loaded: {e}", code="invalid_pem")
    if not isinstance(key, rsa.RSAPrivateKey):
        raise StorageShapeError("private_key is not an RSA key.", code="invalid_pem")
    return key


def _compact_json(obj: dict[str, Any]) -> str:
    return json.dumps(obj, separators=(",", ":"))


def build_assertion(credential: ServiceCredential, now_s: int) -> str:
    """RS256-signed JWT: base64url(header).base64url(claims).base64url(signature)."""
    key = _load_rsa_key(credential.private_key)
    header = b64url_encode(_compact_json({"alg": "RS256", "typ": "JWT"}))
    claims = b64url_encode(_compact_json({
        "iss": credential.client_email,
        "scope": FCM_SCOPE,
        "aud": credential.token_uri or DEFAULT_TOKEN_URI,
        "iat": now_s,
        "exp": now_s + ASSERTION_LIFETIME_S,
    }))
    signing_input = f"{header}.{claims}"
    signature = key.sign(signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())
    return f"{signing_input}.{b64url_encode(signature)}"


class PushDispatcher:
    def __init__(self, http: Optional[HttpClient] = None, cache: Optional[AccessTokenCache] = None):
        self._http = http or HttpClient()
        self._cache = cache or AccessTokenCache()

    @property
    def cache(self) -> AccessTokenCache:
        return self._cache

    async def get_access_token(self, credential: ServiceCredential) -> str:
        """Bearer token for ``credential``, from cache when still live."""
        async with self._cache.lock:
            cached = self._cache.get(credential.client_email)
            if cached:
                return cached

            now_ms = self._cache.now()
            assertion = build_assertion(credential, now_ms // 1000)
            token_uri = credential.token_uri or DEFAULT_TOKEN_URI
            logger.debug("Exchanging assertion for %s at %s", credential.client_email, token_uri)
            resp = await self._http.post_form(token_uri, {
                "grant_type": JWT_BEARER_GRANT,
                "assertion": assertion,
            })
            if not resp.is_success:
                raise TokenExchangeFailed(resp.status_code, resp.text)
            try:
                token = resp.json()["access_token"]
            except (ValueError, KeyError, TypeError):
                raise TokenExchangeFailed(resp.status_code, resp.text)
            if not isinstance(token, str) or not token:
                raise TokenExchangeFailed(resp.status_code, resp.text)

            self._cache.put(credential.client_email, token, now_ms)
            return token

    async def send(self, config: PushConfig, data: dict[str, str]) -> None:
        """Deliver a data-only message to the configured device. Fire-and-forget."""
        token = await self.get_access_token(config.service_credential)
        url = FCM_SEND_URL.format(project_id=config.service_credential.project_id)
        resp = await self._http.post_json(url, {
            "message": {
                "token": config.device_token,
                "data": {"body": data.get("body", "")},
                "android": {"priority": "high"},
            },
        }, token=token)
        if not resp.is_success:
            raise DispatchFailed(resp.status_code, resp.text)
        logger.info("Push sent to project %s", config.service_credential.project_id)

    async def close(self) -> None:
        await self._http.close()
