"""
Normalization of raw booking candidates.

Candidates arrive from the chat extractor, the voice extractor, the admin
form and bulk import, each shaped a little differently. These pure
functions fold them into the canonical fields the ledger stores.
"""

from typing import Any, Iterable, Mapping, Optional

from dispatch.scheduling.slots import normalize_slot, normalize_slot_string
from dispatch.schemas.booking_schema import Booking, JobStatus, Location, TeamType

DEFAULT_NAME = "Unknown Client"
DEFAULT_PHONE = "N/A"
DEFAULT_SERVICE_TYPE = "Repair / Maintenance"
DEFAULT_DESCRIPTION = "No description provided."


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def resolve_location(candidate: Mapping[str, Any]) -> Location:
    """Canonical location with precedence: explicit field > nested location > string location.

    Examples:
        >>> resolve_location({"location": "12 Elm St"}).address
        '12 Elm St'
    """
    nested = candidate.get("location")
    nested_address = ""
    nested_suburb = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    if isinstance(nested, Location):
        nested = nested.model_dump()
    if isinstance(nested, Mapping):
        nested_address = _text(nested.get("address"))
        nested_suburb = _text(nested.get("suburb"))
        lat = nested.get("lat")
        lng = nested.get("lng")
    elif isinstance(nested, str):
        nested_address = nested.strip()

    return Location(
        address=_text(candidate.get("address")) or nested_address,
        suburb=_text(candidate.get("suburb")) or nested_suburb,
        lat=lat,
        lng=lng,
    )


def resolve_team_type(candidate: Mapping[str, Any]) -> TeamType:
    """Explicit team wins; otherwise any service mentioning installation goes to Installation."""
    explicit = candidate.get("team_type")
    if isinstance(explicit, TeamType):
        return explicit
    if isinstance(explicit, str) and explicit.strip():
        for team in TeamType:
            if team.value.lower() == explicit.strip().lower():
                return team
    service = _text(candidate.get("service_type")).lower()
    return TeamType.INSTALLATION if "installation" in service else TeamType.REPAIR


def resolve_slot(candidate: Mapping[str, Any]) -> str:
    """Slot string from ``preferred_date_time`` or from separate ``date`` and ``time`` fields."""
    combined = _text(candidate.get("preferred_date_time"))
    if combined:
        return normalize_slot_string(combined)
    day = _text(candidate.get("date"))
    tod = _text(candidate.get("time"))
    if day and tod:
        try:
            return normalize_slot(day, tod)
        except ValueError:
            return f"{day} {tod}"
    return ""


def resolve_name(candidate: Mapping[str, Any]) -> str:
    return _text(candidate.get("name")) or DEFAULT_NAME


def _key(value: str) -> str:
    return value.strip().lower()


def is_duplicate(name: str, address: str, slot: str, bookings: Iterable[Booking]) -> bool:
    """Same customer, same address, same slot, and the existing booking is still live."""
    return any(
        _key(b.name) == _key(name)
        and _key(b.location.address) == _key(address)
        and b.preferred_date_time == slot
        and b.status != JobStatus.CANCELLED
        for b in bookings
    )
