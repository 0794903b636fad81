import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from pesamirror.models.config import PushConfig


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_account(private_key_pem) -> dict:
    return {
        "type": "service_account",
        "project_id": "pesamirror-test",
        "private_key_id": "abc123",
        "private_key": private_key_pem,
        "client_email": "firebase-adminsdk@pesamirror-test.iam.gserviceaccount.com",
        "client_id": "1234567890",
    }


@pytest.fixture
def push_config(service_account) -> PushConfig:
    return PushConfig(serviceAccount=service_account, deviceToken="device-token-xyz")


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeGoogle:
    """httpx MockTransport handler standing in for the OAuth2 and FCM endpoints."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.send_status = 200
        self.token_payload = None
        self.issued = 0

    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "oauth2.googleapis.com"]

    def send_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "fcm.googleapis.com"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "oauth2.googleapis.com":
            if self.token_status != 200:
                return httpx.Response(self.token_status, text='{"error":"invalid_grant"}')
            if self.token_payload is not None:
                return httpx.Response(200, json=self.token_payload)
            self.issued += 1
            return httpx.Response(200, json={
                "access_token": f"ya29.token-{self.issued}",
                "expires_in": 3599,
                "token_type": "Bearer",
            })
        if request.url.host == "fcm.googleapis.com":
            if self.send_status != 200:
                return httpx.Response(self.send_status, text='{"error":{"status":"UNREGISTERED"}}')
            return httpx.Response(200, json={"name": "projects/pesamirror-test/messages/0:1"})
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()
