"""
Job lifecycle transitions for bookings.

Every status change made by a ledger operation goes through this table.
A trigger with no matching row from the current status is rejected with
the list of triggers that are allowed.

Usage:
    status = JobLifecycle.apply(JobStatus.ASSIGNED, JobTrigger.START)
    assert status == JobStatus.IN_PROGRESS
"""

import logging
from dataclasses import dataclass
from enum import Enum

from dispatch.errors import InvalidStatusTransitionError
from dispatch.schemas.booking_schema import JobStatus

logger = logging.getLogger(__name__)


class JobTrigger(str, Enum):
    """Events that change a booking's status."""
    ASSIGN = "assign"
    UNASSIGN = "unassign"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


# Reassignment is allowed from every status, Completed and Cancelled
# included. Narrow this set to tighten it.
REASSIGNABLE_STATES: frozenset[JobStatus] = frozenset(JobStatus)

CANCELLABLE_STATES: frozenset[JobStatus] = frozenset({
    JobStatus.NEW,
    JobStatus.CONFIRMED,
    JobStatus.ASSIGNED,
    JobStatus.IN_PROGRESS,
})

STAFFED_STATES: frozenset[JobStatus] = frozenset({
    JobStatus.ASSIGNED,
    JobStatus.IN_PROGRESS,
    JobStatus.COMPLETED,
})

UNSTAFFED_STATES: frozenset[JobStatus] = frozenset({
    JobStatus.NEW,
    JobStatus.CANCELLED,
})


@dataclass(frozen=True)
class JobTransition:
    """A single valid status transition."""
    from_state: JobStatus
    to_state: JobStatus
    trigger: JobTrigger


def _build_transitions() -> list[JobTransition]:
    rows: list[JobTransition] = []

    # --- Reassignment ---
    for state in REASSIGNABLE_STATES:
        rows.append(JobTransition(state, JobStatus.ASSIGNED, JobTrigger.ASSIGN))
        rows.append(JobTransition(state, JobStatus.NEW, JobTrigger.UNASSIGN))

    # --- Field work ---
    rows.append(JobTransition(JobStatus.ASSIGNED, JobStatus.IN_PROGRESS, JobTrigger.START))
    rows.append(JobTransition(JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobTrigger.COMPLETE))

    # --- Cancellation ---
    for state in CANCELLABLE_STATES:
        rows.append(JobTransition(state, JobStatus.CANCELLED, JobTrigger.CANCEL))

    return rows


class JobLifecycle:
    """Transition table for the booking lifecycle."""

    TRANSITIONS: list[JobTransition] = _build_transitions()

    @classmethod
    def apply(cls, current: JobStatus, trigger: JobTrigger) -> JobStatus:
        """
        Resolve the status reached from ``current`` via ``trigger``.

        Raises:
            InvalidStatusTransitionError: If no valid transition exists.
        """
        for t in cls.TRANSITIONS:
            if t.from_state == current and t.trigger == trigger:
                logger.debug(
                    "Job transition: %s -> %s (trigger: %s)",
                    current.value, t.to_state.value, trigger.value,
                )
                return t.to_state

        valid = [t.value for t in cls.valid_triggers(current)]
        raise InvalidStatusTransitionError(
            f"No valid transition from '{current.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    @classmethod
    def valid_triggers(cls, current: JobStatus) -> list[JobTrigger]:
        """Return all triggers valid from ``current``, without duplicates."""
        seen: list[JobTrigger] = []
        for t in cls.TRANSITIONS:
            if t.from_state == current and t.trigger not in seen:
                seen.append(t.trigger)
        return seen

    @staticmethod
    def is_consistent(status: JobStatus, assigned_staff_ids: list[str]) -> bool:
        """Staffed statuses need at least one technician; New and Cancelled need none."""
        if assigned_staff_ids:
            return status in STAFFED_STATES
        return status in UNSTAFFED_STATES
