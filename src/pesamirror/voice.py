"""
Voice command orchestrator.

One session at a time: listen → parse → resolve contact → speak a
confirmation → listen for yes/no → submit. Speech engines, the intent
parser and the contact directory are injected; failures never raise out of
the orchestrator, they land in ``state == ERROR`` with ``error_message`` set.

States: idle → listening → processing → confirming → awaiting_confirmation
→ idle | error
"""

import asyncio
import inspect
import logging
import re
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from pesamirror.errors import CaptureFailed
from pesamirror.models.intent import (
    Contact,
    NamedPaymentIntent,
    PochiIntent,
    SendMoneyIntent,
    TransactionIntent,
    contact_to_intent,
    describe_intent,
)

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"

AFFIRMATIVE_RE = re.compile(r"^(yes|yeah|yep|yup|confirm|send|do it|go|ok|okay)", re.IGNORECASE)
# Known to be imprecise: "send 500 to mary" → "mary", but also picks up any
# trailing words after the last "to".
SPOKEN_NAME_RE = re.compile(r"to\s+([a-z\s]+?)(?:\s*$)", re.IGNORECASE)
_PHONE_PUNCTUATION_RE = re.compile(r"[\s\-()+]")

MSG_UNSUPPORTED = "Voice commands are not supported on this device."
MSG_CAPTURE_FAILED = "Could not capture audio."
MSG_NOT_UNDERSTOOD = "Sorry, I didn't catch that. Try: send 500 shillings to 0712345678."
MSG_CONFIRM_PROMPT = "Say yes to confirm, or no to cancel."
MSG_NOT_HEARD = "I couldn't hear you. Tap yes or no on screen."
MSG_SENDING = "Perfect, sending now via remote push."
MSG_DECLINED = "Okay, no problem. Cancelled."
MSG_CANCELLED = "Okay, cancelled."


class VoiceSessionState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    CONFIRMING = "confirming"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    ERROR = "error"


class SpeechCapture(Protocol):
    def is_supported(self) -> bool: ...

    async def listen_once(self, locale: str) -> str:
        """Capture one utterance. Raises CaptureFailed on failure."""
        ...


class SpeechSynth(Protocol):
    async def speak(self, text: str) -> None: ...

    def cancel(self) -> None: ...


class IntentParser(Protocol):
    def parse(self, text: str) -> Optional[TransactionIntent]: ...


class ContactDirectory(Protocol):
    def resolve_phone_or_name(self, text: str) -> Optional[str]: ...

    def resolve_contact(self, name: str) -> Optional[Contact]: ...

    async def save_contact(self, contact: Contact) -> None: ...


SubmitCallback = Callable[[TransactionIntent], Union[None, Awaitable[None]]]


def is_affirmative(response: str) -> bool:
    return bool(AFFIRMATIVE_RE.match(response.strip()))


def extract_spoken_name(utterance: str) -> Optional[str]:
    """Name after a trailing "to", e.g. "send 500 to mary" → "mary"."""
    m = SPOKEN_NAME_RE.search(utterance)
    if not m:
        return None
    name = m.group(1).strip()
    if not name or name[0].isdigit():
        return None
    return name


def looks_numeric(reference: str) -> bool:
    return _PHONE_PUNCTUATION_RE.sub("", reference)[:1].isdigit()


def _needs_account_message(contact: Contact, amount: str) -> str:
    return (
        f"{contact.name} needs an account number. Edit the contact to add one, "
        f"or say: pay bill {contact.phone} account <number> {amount}"
    )


class ResolutionError(Exception):
    """Internal: carries the user-facing message for an unresolvable intent."""


class VoiceCommandOrchestrator:
    def __init__(
        self,
        capture: SpeechCapture,
        synth: SpeechSynth,
        parser: IntentParser,
        contacts: ContactDirectory,
        on_submit: SubmitCallback,
        on_dismiss: Optional[Callable[[], Any]] = None,
        locale: str = DEFAULT_LOCALE,
    ):
        self._capture = capture
        self._synth = synth
        self._parser = parser
        self._contacts = contacts
        self._on_submit = on_submit
        self._on_dismiss = on_dismiss
        self._locale = locale

        self._session = 0
        self._background: set[asyncio.Task] = set()
        self.state = VoiceSessionState.IDLE
        self.transcript = ""
        self.pending_intent: Optional[TransactionIntent] = None
        self.error_message = ""

    @property
    def is_supported(self) -> bool:
        return self._capture.is_supported()

    # ── helpers ──────────────────────────────────────────────────────────

    async def _say(self, text: str) -> None:
        try:
            await self._synth.speak(text)
        except Exception as e:
            logger.debug("Speech synthesis failed: %s", e)

    def _silence(self) -> None:
        try:
            self._synth.cancel()
        except Exception as e:
            logger.debug("Speech cancel failed: %s", e)

    def _reset(self) -> None:
        self._session += 1
        self.state = VoiceSessionState.IDLE
        self.transcript = ""
        self.pending_intent = None
        self.error_message = ""

    def _dismiss(self) -> None:
        if self._on_dismiss:
            self._on_dismiss()

    async def _fail(self, message: str) -> None:
        logger.info("Voice session error: %s", message)
        self.state = VoiceSessionState.ERROR
        self.error_message = message
        await self._say(message)

    async def _listen(self) -> str:
        try:
            return await self._capture.listen_once(self._locale)
        except CaptureFailed:
            raise
        except Exception as e:
            logger.warning("Speech capture raised %s", type(e).__name__)
            raise CaptureFailed(MSG_CAPTURE_FAILED) from e

    def _resolve(self, parsed: TransactionIntent) -> TransactionIntent:
        """Turn name references into a concrete intent. Phone numbers win over names."""
        if isinstance(parsed, (SendMoneyIntent, PochiIntent)):
            reference = parsed.phone
            phone = self._contacts.resolve_phone_or_name(reference)
            if phone:
                return parsed.model_copy(update={"phone": phone})
            if looks_numeric(reference):
                return parsed
            contact = self._contacts.resolve_contact(reference)
            if not contact:
                raise ResolutionError(
                    f'I couldn\'t find "{reference}" in your contacts. '
                    "Add them first, or say a phone number directly."
                )
            return self._from_contact(contact, parsed.amount)

        if isinstance(parsed, NamedPaymentIntent):
            contact = self._contacts.resolve_contact(parsed.contact_name)
            if not contact:
                raise ResolutionError(
                    f'I couldn\'t find "{parsed.contact_name}" in your contacts. '
                    "Add it first under Voice Contacts."
                )
            return self._from_contact(contact, parsed.amount)

        return parsed

    @staticmethod
    def _from_contact(contact: Contact, amount: str) -> TransactionIntent:
        intent = contact_to_intent(contact, amount)
        if intent is None:
            raise ResolutionError(_needs_account_message(contact, amount))
        return intent

    async def _remember_contact(self, intent: TransactionIntent, utterance: str) -> None:
        if not isinstance(intent, (SendMoneyIntent, PochiIntent)):
            return
        name = extract_spoken_name(utterance)
        if not name:
            return
        try:
            await self._contacts.save_contact(Contact(name=name, phone=intent.phone))
        except Exception as e:
            logger.debug("Could not save voice contact %r: %s", name, e)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _execute(self, intent: TransactionIntent, utterance: str) -> None:
        self._silence()
        self._reset()
        self._dismiss()
        # Best-effort side effects; only the submit is awaited.
        self._spawn(self._remember_contact(intent, utterance))
        self._spawn(self._say(MSG_SENDING))
        result = self._on_submit(intent)
        if inspect.isawaitable(result):
            await result

    # ── public API ───────────────────────────────────────────────────────

    async def start(self) -> None:
        """Run one voice session to completion (or to ``error``)."""
        if not self.is_supported:
            self._reset()
            await self._fail(MSG_UNSUPPORTED)
            return

        self._silence()
        self._reset()
        session = self._session
        self.state = VoiceSessionState.LISTENING

        try:
            raw = await self._listen()
        except CaptureFailed as e:
            if session == self._session:
                await self._fail(str(e) or MSG_CAPTURE_FAILED)
            return
        if session != self._session:
            return

        self.transcript = raw
        self.state = VoiceSessionState.PROCESSING

        try:
            parsed = self._parser.parse(raw)
        except Exception as e:
            logger.warning("Intent parser raised %s", type(e).__name__)
            parsed = None
        if parsed is None:
            await self._fail(MSG_NOT_UNDERSTOOD)
            return
        try:
            intent = self._resolve(parsed)
        except ResolutionError as e:
            await self._fail(str(e))
            return
        except Exception as e:
            logger.warning("Contact lookup raised %s", type(e).__name__)
            await self._fail(MSG_NOT_UNDERSTOOD)
            return

        self.pending_intent = intent
        self.state = VoiceSessionState.CONFIRMING
        await self._say(f"{describe_intent(intent)} {MSG_CONFIRM_PROMPT}")
        if session != self._session:
            return

        self.state = VoiceSessionState.AWAITING_CONFIRMATION
        try:
            response = await self._listen()
        except CaptureFailed:
            if session == self._session:
                # Pending intent stays so confirm() can still submit it.
                self.state = VoiceSessionState.CONFIRMING
                await self._say(MSG_NOT_HEARD)
            return
        if session != self._session or self.pending_intent is None:
            return

        if is_affirmative(response):
            await self._execute(intent, raw)
        else:
            self._reset()
            self._dismiss()
            await self._say(MSG_DECLINED)

    async def confirm(self) -> None:
        """Manual fallback: submit the pending intent without a spoken yes."""
        intent = self.pending_intent
        if intent is None:
            return
        await self._execute(intent, self.transcript)

    async def settle(self) -> None:
        """Wait for the spoken "sending" phrase and contact save started by a submit."""
        if self._background:
            await asyncio.gather(*list(self._background))

    async def cancel(self) -> None:
        self._silence()
        self._reset()
        self._dismiss()
        await self._say(MSG_CANCELLED)
