"""
PesaMirror client — configuration store + push dispatcher behind one object.

AsyncPesaMirror is the primary API. PesaMirror wraps it with its own event
loop for synchronous callers.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from pesamirror.config_store import ConfigStore
from pesamirror.errors import NetworkError, PesaMirrorError, StorageShapeError
from pesamirror.models.config import PushConfig
from pesamirror.models.intent import TransactionIntent
from pesamirror.payload import build_trigger_body
from pesamirror.push import AccessTokenCache, Clock, PushDispatcher, system_clock
from pesamirror.storage import FileStore, KeyValueStore, MemoryStore
from pesamirror.transport.http import HttpClient

logger = logging.getLogger(__name__)

MSG_NOT_CONFIGURED = "Remote push not configured. Run `pesamirror config set` to set up FCM."
MSG_PUSH_FAILED = "Remote push failed. Check internet and FCM settings."
MSG_PUSH_SENT = "Push sent to device."


@dataclass
class TriggerResult:
    ok: bool
    message: str
    body: Optional[str] = None


class AsyncPesaMirror:
    def __init__(
        self,
        durable: Optional[KeyValueStore] = None,
        session: Optional[KeyValueStore] = None,
        http: Optional[HttpClient] = None,
        clock: Clock = system_clock,
    ):
        self._store = ConfigStore(durable if durable is not None else FileStore(), session or MemoryStore())
        self._dispatcher = PushDispatcher(http or HttpClient(), AccessTokenCache(clock))

    @property
    def store(self) -> ConfigStore:
        return self._store

    @property
    def dispatcher(self) -> PushDispatcher:
        return self._dispatcher

    async def save_config(self, config: PushConfig, passphrase: Optional[str] = None) -> None:
        await self._store.save(config, passphrase)

    def load_config(self) -> Optional[PushConfig]:
        return self._store.load()

    def is_encrypted(self) -> bool:
        return self._store.is_encrypted()

    async def unlock(self, passphrase: str) -> bool:
        return await self._store.unlock(passphrase)

    def clear_config(self) -> None:
        self._store.clear()

    async def trigger_body(self, body: str) -> None:
        """Push a pre-encoded trigger body. Raises on missing config or network failure."""
        config = self._store.load()
        if config is None:
            raise StorageShapeError(MSG_NOT_CONFIGURED, code="not_configured")
        await self._dispatcher.send(config, {"body": body})

    async def trigger(self, intent: TransactionIntent) -> str:
        """Encode ``intent`` and push it. Returns the body that was sent."""
        body = build_trigger_body(intent)
        await self.trigger_body(body)
        return body

    async def submit_voice_intent(self, intent: TransactionIntent) -> TriggerResult:
        """Submit callback for the voice orchestrator. Never raises."""
        if self._store.load() is None:
            return TriggerResult(False, MSG_NOT_CONFIGURED)
        try:
            body = await self.trigger(intent)
        except (NetworkError, httpx.HTTPError) as e:
            logger.warning("Remote push failed: %s", e)
            return TriggerResult(False, MSG_PUSH_FAILED)
        except PesaMirrorError as e:
            return TriggerResult(False, str(e))
        return TriggerResult(True, MSG_PUSH_SENT, body)

    async def close(self) -> None:
        await self._dispatcher.close()


class PesaMirror:
    """Sync wrapper around AsyncPesaMirror. Runs the event loop internally."""

    def __init__(self, **kwargs: Any):
        self._loop = asyncio.new_event_loop()
        self._async = AsyncPesaMirror(**kwargs)

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def store(self) -> ConfigStore:
        return self._async.store

    def save_config(self, config: PushConfig, passphrase: Optional[str] = None) -> None:
        self._run(self._async.save_config(config, passphrase))

    def load_config(self) -> Optional[PushConfig]:
        return self._async.load_config()

    def is_encrypted(self) -> bool:
        return self._async.is_encrypted()

    def unlock(self, passphrase: str) -> bool:
        return self._run(self._async.unlock(passphrase))

    def clear_config(self) -> None:
        self._async.clear_config()

    def trigger(self, intent: TransactionIntent) -> str:
        return self._run(self._async.trigger(intent))

    def trigger_body(self, body: str) -> None:
        self._run(self._async.trigger_body(body))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
