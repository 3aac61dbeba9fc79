"""
Confirmation gatekeeper: at most one booking per conversational session.

Each checkpoint hands the full transcript to the extraction oracle. A
booking is committed only on the first result that is both complete and
confirmed by the user; the session leaves ``gathering`` before the
commit handler runs, so late or overlapping results are ignored.

Usage:
    gate = ConfirmationGatekeeper(oracle, ledger.create)
    outcome = await gate.checkpoint(transcript)
    if outcome == CheckpointOutcome.COMMITTED:
        ...
"""

import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from dispatch.conversation.extraction import ExtractionOracle
from dispatch.errors import ExtractionError
from dispatch.logging_context import get_session_logger
from dispatch.schemas.conversation_schema import TranscriptTurn

logger = get_session_logger(__name__)

CommitHandler = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]


class SessionPhase(str, Enum):
    """Where a session stands with respect to its one allowed commit."""
    GATHERING = "gathering"
    COMMITTING = "committing"
    COMMITTED = "committed"
    CLOSED = "closed"


class CheckpointOutcome(str, Enum):
    IGNORED = "ignored"
    ORACLE_ERROR = "oracle_error"
    PENDING = "pending"
    COMMITTED = "committed"
    COMMIT_FAILED = "commit_failed"


@dataclass
class PhaseEntry:
    """Recorded history entry for a phase change."""
    phase: SessionPhase
    entered_at: datetime


class ConfirmationGatekeeper:
    """
    Serializes checkpoints for one session and commits at most once.

    Oracle failures leave the session in ``gathering`` so the next
    checkpoint retries over the longer transcript. Closing the session
    stops checkpointing but never undoes a commit already made.
    """

    def __init__(self, oracle: ExtractionOracle, on_commit: CommitHandler) -> None:
        self._oracle = oracle
        self._on_commit = on_commit
        self._lock = asyncio.Lock()
        self._phase = SessionPhase.GATHERING
        self._close_requested = False
        self._history: list[PhaseEntry] = [
            PhaseEntry(phase=SessionPhase.GATHERING, entered_at=datetime.now(timezone.utc))
        ]
        self.committed_candidate: Optional[dict[str, Any]] = None
        self.commit_error: Optional[Exception] = None
        self.checkpoint_count = 0

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def is_open(self) -> bool:
        return self._phase == SessionPhase.GATHERING

    @property
    def is_committed(self) -> bool:
        return self.committed_candidate is not None

    def get_phase_trace(self) -> list[str]:
        return [entry.phase.value for entry in self._history]

    def _enter(self, phase: SessionPhase) -> None:
        old = self._phase
        self._phase = phase
        self._history.append(PhaseEntry(phase=phase, entered_at=datetime.now(timezone.utc)))
        logger.debug("Session phase: %s -> %s", old.value, phase.value)

    async def checkpoint(self, transcript: Sequence[TranscriptTurn]) -> CheckpointOutcome:
        """
        Run one extraction pass and commit if the user has confirmed.

        Returns:
            COMMITTED on the single qualifying result, COMMIT_FAILED when
            that result reached the commit handler but the handler raised,
            PENDING when details are still missing or unconfirmed,
            ORACLE_ERROR when extraction failed, IGNORED once the session
            has left ``gathering``.
        """
        if not self.is_open:
            return CheckpointOutcome.IGNORED

        async with self._lock:
            if not self.is_open:
                return CheckpointOutcome.IGNORED

            self.checkpoint_count += 1
            snapshot = list(transcript)
            try:
                result = await self._oracle.extract(snapshot)
            except ExtractionError as e:
                logger.warning("Checkpoint %d: extraction failed: %s", self.checkpoint_count, e)
                return CheckpointOutcome.ORACLE_ERROR

            if not self.is_open:
                logger.info("Checkpoint %d: session moved on, result dropped", self.checkpoint_count)
                return CheckpointOutcome.IGNORED

            if not result.ready_to_commit:
                logger.debug(
                    "Checkpoint %d: pending (complete=%s, confirmed=%s)",
                    self.checkpoint_count, result.is_complete, result.is_confirmed,
                )
                return CheckpointOutcome.PENDING

            self._enter(SessionPhase.COMMITTING)
            candidate = result.to_candidate()
            self.committed_candidate = candidate
            try:
                outcome = self._on_commit(candidate)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                self.commit_error = e
                logger.exception("Commit handler failed; session will not retry")
            finally:
                self._enter(SessionPhase.COMMITTED)
                if self._close_requested:
                    self._enter(SessionPhase.CLOSED)

            if self.commit_error is not None:
                return CheckpointOutcome.COMMIT_FAILED
            logger.info(
                "Booking committed for %s at %s",
                candidate.get("name"), candidate.get("preferred_date_time"),
            )
            return CheckpointOutcome.COMMITTED

    def close(self) -> None:
        """Stop accepting checkpoints. A commit in flight still completes."""
        if self._phase == SessionPhase.CLOSED:
            return
        if self._phase == SessionPhase.COMMITTING:
            self._close_requested = True
            return
        self._enter(SessionPhase.CLOSED)
        logger.info("Session closed after %d checkpoint(s)", self.checkpoint_count)
