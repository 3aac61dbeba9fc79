"""
Staff availability over the live roster and booking ledger.

Availability is recomputed from scratch on every call. Rosters and
booking sets are small, so nothing here is cached or maintained
incrementally.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence

from dispatch.schemas.booking_schema import (
    Booking,
    JobStatus,
    StaffMember,
    TeamType,
    UserRole,
)
from dispatch.scheduling.slots import SUMMARY_TIMES, next_n_days

logger = logging.getLogger(__name__)

SUMMARY_DAYS = 7
SUMMARY_HEADER = "Availability (AEST 09:00-17:00):"


@dataclass(frozen=True)
class SlotCount:
    """Free technicians per team at one representative time."""
    time: str
    repair: int
    installation: int

    @property
    def any_free(self) -> bool:
        return self.repair > 0 or self.installation > 0


@dataclass
class DayAvailability:
    date: str
    slots: list[SlotCount] = field(default_factory=list)


def available_staff(
    slot: str,
    team_type: TeamType,
    roster: Iterable[StaffMember],
    bookings: Iterable[Booking],
) -> list[StaffMember]:
    """Active staff of ``team_type`` with no live booking at exactly ``slot``.

    Roster order is preserved, so "first available" is deterministic.
    A team with nobody free yields an empty list, never an error.
    """
    busy: set[str] = set()
    for booking in bookings:
        if booking.preferred_date_time == slot and booking.status != JobStatus.CANCELLED:
            busy.update(booking.assigned_staff_ids)

    return [
        member
        for member in roster
        if member.active
        and member.role == UserRole.STAFF
        and member.team_type == team_type
        and member.id not in busy
    ]


class AvailabilityResolver:
    """Answers availability queries against live roster and ledger state."""

    def __init__(
        self,
        roster_source: Callable[[], Sequence[StaffMember]],
        booking_source: Callable[[], Sequence[Booking]],
    ) -> None:
        self._roster_source = roster_source
        self._booking_source = booking_source

    def available(self, slot: str, team_type: TeamType) -> list[StaffMember]:
        return available_staff(slot, team_type, self._roster_source(), self._booking_source())

    def first_available(self, slot: str, team_type: TeamType) -> Optional[StaffMember]:
        """First free member in roster order, or None."""
        free = self.available(slot, team_type)
        return free[0] if free else None

    def summary(
        self,
        days: int = SUMMARY_DAYS,
        times: Sequence[str] = SUMMARY_TIMES,
        dates: Optional[Sequence[str]] = None,
    ) -> list[DayAvailability]:
        """Per-day counts of free Repair and Installation staff at each representative time."""
        roster = list(self._roster_source())
        bookings = list(self._booking_source())
        result: list[DayAvailability] = []
        for day in dates if dates is not None else next_n_days(days):
            entry = DayAvailability(date=day)
            for tod in times:
                slot = f"{day} {tod}"
                entry.slots.append(SlotCount(
                    time=tod,
                    repair=len(available_staff(slot, TeamType.REPAIR, roster, bookings)),
                    installation=len(
                        available_staff(slot, TeamType.INSTALLATION, roster, bookings)
                    ),
                ))
            result.append(entry)
        return result

    def format_summary(self, digest: Optional[list[DayAvailability]] = None) -> str:
        """Compact text digest for injection into the assistant's directive.

        Only times with at least one free technician are listed, e.g.
        ``2025-05-20: [09:00: 1R 0I] [11:00: 1R 1I]``.
        """
        digest = digest if digest is not None else self.summary()
        lines = [SUMMARY_HEADER]
        for day in digest:
            cells = " ".join(
                f"[{cell.time}: {cell.repair}R {cell.installation}I]"
                for cell in day.slots
                if cell.any_free
            )
            lines.append(f"{day.date}: {cells}".rstrip())
        text = "\n".join(lines)
        logger.debug("Availability digest built for %d day(s)", len(digest))
        return text
