import json

import pytest

from pesamirror.config_store import (
    REDACTED,
    SESSION_KEY,
    STORAGE_KEY,
    ConfigStore,
    parse_push_config,
    redact_private_key,
    validate_service_account_json,
)
from pesamirror.errors import StorageShapeError
from pesamirror.storage import FileStore, MemoryStore


def make_store():
    durable, session = MemoryStore(), MemoryStore()
    return ConfigStore(durable, session), durable, session


@pytest.mark.asyncio
async def test_save_plaintext_roundtrip(push_config):
    store, durable, session = make_store()
    await store.save(push_config)
    assert not store.is_encrypted()
    assert json.loads(durable.get(STORAGE_KEY))["deviceToken"] == "device-token-xyz"
    assert store.load() == push_config

    # A new session (fresh cache) still loads plaintext from durable storage.
    fresh = ConfigStore(durable, MemoryStore())
    assert fresh.load() == push_config


@pytest.mark.asyncio
async def test_save_encrypted_then_unlock(push_config):
    store, durable, session = make_store()
    await store.save(push_config, "abc")
    assert store.is_encrypted()
    assert "private_key" not in durable.get(STORAGE_KEY)
    # Same session keeps the plaintext cache.
    assert store.load() == push_config

    locked = ConfigStore(durable, MemoryStore())
    assert locked.is_encrypted()
    assert locked.load() is None

    assert await locked.unlock("wrong") is False
    assert locked.load() is None

    assert await locked.unlock("abc") is True
    assert locked.load() == push_config


@pytest.mark.asyncio
async def test_passphrase_is_trimmed(push_config):
    store, durable, _ = make_store()
    await store.save(push_config, "  abc  ")
    other = ConfigStore(durable, MemoryStore())
    assert await other.unlock("abc")


@pytest.mark.asyncio
async def test_blank_passphrase_saves_plaintext(push_config):
    store, _, _ = make_store()
    await store.save(push_config, "   ")
    assert not store.is_encrypted()


@pytest.mark.asyncio
async def test_resave_plaintext_replaces_envelope(push_config):
    store, durable, _ = make_store()
    await store.save(push_config, "abc")
    await store.save(push_config)
    assert not store.is_encrypted()
    assert parse_push_config(durable.get(STORAGE_KEY)) == push_config


@pytest.mark.asyncio
async def test_unlock_without_envelope_is_false(push_config):
    store, _, _ = make_store()
    assert await store.unlock("abc") is False
    await store.save(push_config)
    assert await store.unlock("abc") is False


@pytest.mark.asyncio
async def test_unlock_corrupt_envelope_is_false():
    store, durable, _ = make_store()
    durable.set(STORAGE_KEY, '{"v":1,"enc":"AAAA","iv":"AAAAAAAAAAAAAAAA","salt":"AAAA"}')
    assert store.is_encrypted()
    assert await store.unlock("abc") is False


@pytest.mark.asyncio
async def test_clear_removes_everything(push_config):
    store, durable, session = make_store()
    await store.save(push_config, "abc")
    store.clear()
    assert durable.get(STORAGE_KEY) is None
    assert session.get(SESSION_KEY) is None
    assert store.load() is None
    assert not store.is_encrypted()


def test_load_ignores_malformed_storage():
    store, durable, session = make_store()
    session.set(SESSION_KEY, "{broken")
    durable.set(STORAGE_KEY, json.dumps({"serviceAccount": {"project_id": "p"}, "deviceToken": "t"}))
    assert store.load() is None


@pytest.mark.asyncio
async def test_file_store_persists(tmp_path, push_config):
    path = tmp_path / "storage.json"
    store = ConfigStore(FileStore(path))
    await store.save(push_config, "abc")
    assert ConfigStore(FileStore(path)).is_encrypted()
    store.clear()
    assert FileStore(path).get(STORAGE_KEY) is None


def test_validate_service_account_json(service_account):
    cfg = validate_service_account_json(json.dumps(service_account), "  tok  ")
    assert cfg.device_token == "tok"
    assert cfg.service_credential.project_id == "pesamirror-test"


@pytest.mark.parametrize("mutate,code", [
    (lambda sa: "{not json", "invalid_json"),
    (lambda sa: json.dumps({**sa, "client_email": ""}), "missing_fields"),
    (lambda sa: json.dumps({k: v for k, v in sa.items() if k != "project_id"}), "missing_fields"),
    (lambda sa: json.dumps({**sa, "private_key": "abc"}), "invalid_pem"),
])
def test_validate_service_account_json_errors(service_account, mutate, code):
    with pytest.raises(StorageShapeError) as exc:
        validate_service_account_json(mutate(service_account), "tok")
    assert exc.value.code == code


def test_validate_requires_device_token(service_account):
    with pytest.raises(StorageShapeError, match="Device token is required"):
        validate_service_account_json(json.dumps(service_account), "  ")


def test_redact_private_key(service_account):
    text = json.dumps(service_account, indent=2)
    redacted = redact_private_key(text)
    assert "BEGIN PRIVATE KEY" not in redacted
    assert REDACTED in redacted
    assert "pesamirror-test" in redacted
    assert redact_private_key('{"a": 1}') == '{"a": 1}'
