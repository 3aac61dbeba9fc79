"""
Conversational intake channels: text chat and continuous voice.

Both channels own their transcript and feed snapshots of it to a
``ConfirmationGatekeeper``. The chat channel checkpoints after every
exchange; the voice channel checkpoints on turn completion and on a
fixed polling interval. Neither knows anything about audio transport.
"""

import asyncio
import contextlib
from typing import Optional, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError

from dispatch.config import settings
from dispatch.conversation.extraction import ExtractionOracle
from dispatch.conversation.gatekeeper import CheckpointOutcome, ConfirmationGatekeeper
from dispatch.errors import ConversationProviderError, SessionClosedError
from dispatch.ledger.booking_ledger import BookingLedger
from dispatch.logging_context import get_session_logger, set_session_id
from dispatch.prompts.prompt_templates import build_system_directive
from dispatch.prompts.system_prompts import (
    APOLOGY_MESSAGE,
    COMMIT_FAILED_MESSAGE,
    DISPATCH_CONFIRMATION_MESSAGE,
    GATEWAY_ERROR_MESSAGE,
    GREETING_REQUEST,
    OFFLINE_MESSAGE,
)
from dispatch.schemas.booking_schema import Booking
from dispatch.schemas.conversation_schema import Speaker, TranscriptTurn
from dispatch.utils import short_id

logger = get_session_logger(__name__)


class ConversationProvider(Protocol):
    """Produces the assistant's next free-text turn.

    Implementations raise ``ConversationProviderError`` on failure.
    """

    async def reply(self, directive: str, transcript: Sequence[TranscriptTurn]) -> str:
        ...


class OpenAIConversationProvider:
    """Assistant turns from an OpenAI chat completion."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=settings.model.openai_api_key or None)
        self._model = model or settings.model.chat_model
        self._temperature = (
            temperature if temperature is not None else settings.model.chat_temperature
        )

    async def reply(self, directive: str, transcript: Sequence[TranscriptTurn]) -> str:
        messages = [{"role": "system", "content": directive}]
        if not transcript:
            messages.append({"role": "user", "content": GREETING_REQUEST})
        for turn in transcript:
            role = "assistant" if turn.speaker == Speaker.AGENT else "user"
            messages.append({"role": role, "content": turn.text})

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
            )
        except OpenAIError as e:
            raise ConversationProviderError(f"Chat completion failed: {e}") from e

        if not response.choices:
            raise ConversationProviderError("Chat completion returned no choices")
        return (response.choices[0].message.content or "").strip()


class ChatSession:
    """
    One text-chat intake conversation.

    The directive is built once at session start from the live
    availability digest. After the booking is committed a confirmation
    message is appended and the session refuses further input. If the
    commit itself fails the user is told so; the session still closes.
    """

    def __init__(
        self,
        ledger: BookingLedger,
        provider: ConversationProvider,
        oracle: ExtractionOracle,
        session_id: Optional[str] = None,
        directive: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or f"CHAT-{short_id(6)}"
        self._ledger = ledger
        self._provider = provider
        self.directive = (
            directive if directive is not None
            else build_system_directive(ledger.availability_summary_text())
        )
        self.transcript: list[TranscriptTurn] = []
        self.booking: Optional[Booking] = None
        self.gatekeeper = ConfirmationGatekeeper(oracle, self._commit)

    @property
    def closed(self) -> bool:
        return not self.gatekeeper.is_open

    def _commit(self, candidate: dict) -> None:
        self.booking = self._ledger.create(candidate)

    def _say(self, text: str) -> str:
        self.transcript.append(TranscriptTurn(speaker=Speaker.AGENT, text=text))
        return text

    async def open(self) -> str:
        """Produce the assistant's greeting."""
        set_session_id(self.session_id)
        if not self.directive.strip():
            logger.warning("Chat session opened with an empty directive")
            return self._say(OFFLINE_MESSAGE)
        try:
            greeting = await self._provider.reply(self.directive, [])
        except ConversationProviderError as e:
            logger.error("Greeting failed: %s", e)
            return self._say(GATEWAY_ERROR_MESSAGE)
        logger.info("Chat session opened")
        return self._say(greeting)

    async def send(self, text: str) -> list[str]:
        """
        Add a user message and return the assistant messages it produced.

        Raises:
            SessionClosedError: If the session already committed or was closed.
        """
        set_session_id(self.session_id)
        if self.closed:
            raise SessionClosedError(f"Session {self.session_id} no longer accepts messages.")
        text = text.strip()
        if not text:
            return []

        self.transcript.append(TranscriptTurn(speaker=Speaker.USER, text=text))
        try:
            reply = await self._provider.reply(self.directive, self.transcript)
        except ConversationProviderError as e:
            logger.error("Assistant turn failed: %s", e)
            return [self._say(APOLOGY_MESSAGE)]

        messages = [self._say(reply)]
        outcome = await self.gatekeeper.checkpoint(self.transcript)
        if outcome == CheckpointOutcome.COMMITTED:
            messages.append(self._say(DISPATCH_CONFIRMATION_MESSAGE))
        elif outcome == CheckpointOutcome.COMMIT_FAILED:
            messages.append(self._say(COMMIT_FAILED_MESSAGE))
        return messages

    def close(self) -> None:
        self.gatekeeper.close()


class VoiceCheckpointer:
    """
    Confirmation checkpoints for a continuous voice conversation.

    The voice transport pushes transcription snippets through
    ``add_turn`` and signals ``on_turn_complete``. ``run`` additionally
    polls on a fixed interval once the conversation is long enough.
    """

    def __init__(
        self,
        ledger: BookingLedger,
        oracle: ExtractionOracle,
        session_id: Optional[str] = None,
        interval_sec: Optional[float] = None,
        min_turns: Optional[int] = None,
    ) -> None:
        self.session_id = session_id or f"VOICE-{short_id(6)}"
        self._ledger = ledger
        self._interval = (
            interval_sec if interval_sec is not None
            else settings.gatekeeper.voice_checkpoint_interval_sec
        )
        self._min_turns = min_turns if min_turns is not None else settings.gatekeeper.voice_min_turns
        self.transcript: list[TranscriptTurn] = []
        self.booking: Optional[Booking] = None
        self.gatekeeper = ConfirmationGatekeeper(oracle, self._commit)
        self._task: Optional[asyncio.Task] = None

    def _commit(self, candidate: dict) -> None:
        self.booking = self._ledger.create(candidate)

    def add_turn(self, speaker: Speaker, text: str) -> None:
        if text.strip():
            self.transcript.append(TranscriptTurn(speaker=speaker, text=text.strip()))

    async def on_turn_complete(self) -> CheckpointOutcome:
        """Checkpoint after a spoken exchange, once enough has been said."""
        set_session_id(self.session_id)
        if len(self.transcript) < self._min_turns:
            return CheckpointOutcome.IGNORED
        return await self.gatekeeper.checkpoint(self.transcript)

    async def run(self) -> None:
        """Poll until the session commits or is stopped."""
        set_session_id(self.session_id)
        logger.info("Voice polling every %.1fs", self._interval)
        while self.gatekeeper.is_open:
            await asyncio.sleep(self._interval)
            if len(self.transcript) > self._min_turns:
                await self.gatekeeper.checkpoint(self.transcript)

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Hang up: no further checkpoints. A booking already made stands."""
        self.gatekeeper.close()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Voice session stopped (booking=%s)", self.booking.id if self.booking else None)
