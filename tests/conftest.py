"""Shared test fixtures and helpers."""

from typing import Optional, Sequence, Union

import pytest

from dispatch.errors import ConversationProviderError, ExtractionError
from dispatch.ledger.booking_ledger import BookingLedger
from dispatch.ledger.store import InMemoryStore
from dispatch.schemas.booking_schema import (
    Booking,
    BusinessSettings,
    EquipmentItem,
    JobStatus,
    LineItem,
    Location,
    Payment,
    StaffMember,
    TeamType,
    UserRole,
)
from dispatch.schemas.conversation_schema import ExtractionResult, Speaker, TranscriptTurn

SLOT = "2025-05-20 09:00"


def make_business(
    hourly_rate: float = 110,
    gst_rate: float = 10,
    catalog: Optional[dict[str, float]] = None,
) -> BusinessSettings:
    """BusinessSettings with a small, fixed equipment catalog."""
    if catalog is None:
        catalog = {"Ducted Zone Controller": 450, "7kW Split System Unit": 1450}
    return BusinessSettings(
        name="Test HVAC",
        hourly_rate=hourly_rate,
        gst_rate=gst_rate,
        equipment_catalog=[EquipmentItem(model=m, cost=c) for m, c in catalog.items()],
    )


def make_staff(
    staff_id: str = "s1",
    team_type: TeamType = TeamType.REPAIR,
    active: bool = True,
    role: UserRole = UserRole.STAFF,
    name: Optional[str] = None,
    arc_license: Optional[str] = None,
) -> StaffMember:
    return StaffMember(
        id=staff_id,
        name=name or f"Tech {staff_id}",
        role=role,
        team_type=team_type,
        active=active,
        arc_license=arc_license,
    )


def make_booking(
    booking_id: str = "b1",
    name: str = "Jo Citizen",
    address: str = "12 Elm St",
    slot: str = SLOT,
    status: JobStatus = JobStatus.NEW,
    staff: Optional[list[str]] = None,
    team_type: TeamType = TeamType.REPAIR,
    labor_hours: Optional[float] = None,
    equipment: Optional[list[str]] = None,
    line_items: Optional[list[tuple[str, float]]] = None,
    payments: Sequence[float] = (),
) -> Booking:
    """Booking with sensible defaults; ``line_items`` given as (description, amount)."""
    return Booking(
        id=booking_id,
        name=name,
        phone="0412 345 678",
        service_type="Repair / Maintenance",
        team_type=team_type,
        location=Location(address=address, suburb="Braddon"),
        preferred_date_time=slot,
        status=status,
        created_at="2025-05-01T09:00:00+10:00",
        assigned_staff_ids=staff or [],
        labor_hours=labor_hours,
        equipment_used=equipment,
        line_items=[
            LineItem(id=f"li{i}", description=d, amount=a)
            for i, (d, a) in enumerate(line_items or [])
        ],
        payments=[
            Payment(id=f"p{i}", amount=a, date="2025-05-20", method="Card")
            for i, a in enumerate(payments)
        ],
    )


def make_candidate(**overrides) -> dict:
    candidate = {
        "name": "Jo Citizen",
        "phone": "0412 345 678",
        "service_type": "Repair / Maintenance",
        "description": "Unit blowing warm air",
        "address": "12 Elm St",
        "preferred_date_time": SLOT,
    }
    candidate.update(overrides)
    return candidate


def make_turn(speaker: Speaker, text: str) -> TranscriptTurn:
    return TranscriptTurn(speaker=speaker, text=text)


def make_transcript(*texts: str) -> list[TranscriptTurn]:
    """Alternating agent/user turns, starting with the agent."""
    return [
        make_turn(Speaker.AGENT if i % 2 == 0 else Speaker.USER, text)
        for i, text in enumerate(texts)
    ]


def make_extraction(complete: bool = True, confirmed: bool = True, **fields) -> ExtractionResult:
    data = make_candidate()
    data.update(fields)
    return ExtractionResult(**data, is_complete=complete, is_confirmed=confirmed)


class StubOracle:
    """Returns queued results in order; queued exceptions are raised."""

    def __init__(self, results: Sequence[Union[ExtractionResult, Exception]] = ()) -> None:
        self._results = list(results)
        self.calls: list[list[TranscriptTurn]] = []

    def queue(self, result: Union[ExtractionResult, Exception]) -> None:
        self._results.append(result)

    async def extract(self, transcript: Sequence[TranscriptTurn]) -> ExtractionResult:
        self.calls.append(list(transcript))
        if not self._results:
            return ExtractionResult()
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class StubProvider:
    """Replies from a fixed script; a ``None`` entry simulates a provider failure."""

    def __init__(self, replies: Sequence[Optional[str]] = ()) -> None:
        self._replies = list(replies)
        self.directives: list[str] = []

    async def reply(self, directive: str, transcript: Sequence[TranscriptTurn]) -> str:
        self.directives.append(directive)
        reply = self._replies.pop(0) if self._replies else "OK."
        if reply is None:
            raise ConversationProviderError("provider unavailable")
        return reply


class FailingStore(InMemoryStore):
    """In-memory store whose writes raise ``OSError`` once ``failing`` is set."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.failing = False

    def save_all(self, key, documents) -> None:
        if getattr(self, "failing", False):
            raise OSError("disk full")
        super().save_all(key, documents)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def business():
    return make_business()


@pytest.fixture
def ledger(store, business):
    """Ledger over an empty store: default roster (admin1, s1 Repair, s2 Installation)."""
    return BookingLedger(store, business=business)


@pytest.fixture
def oracle_error():
    return ExtractionError("malformed JSON")
