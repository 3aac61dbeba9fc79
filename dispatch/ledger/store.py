"""
Keyed document stores backing the ledger.

The ledger persists its whole booking collection and roster as opaque
JSON documents under fixed keys. Any backend that can ``load`` and
``save_all`` a list of dicts by key will do; two are provided here.

Stored records are never dropped on load. Missing or malformed fields
are defaulted one by one, because the next ``save_all`` rewrites the
whole collection and anything left out of memory is gone for good.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from dispatch.ledger.intake import (
    DEFAULT_NAME,
    DEFAULT_PHONE,
    DEFAULT_SERVICE_TYPE,
    resolve_team_type,
)
from dispatch.scheduling.slots import now_iso
from dispatch.schemas.booking_schema import Booking, JobStatus, StaffMember, TeamType
from dispatch.utils import short_id

logger = logging.getLogger(__name__)

BOOKINGS_KEY = "hvac_bookings"
STAFF_KEY = "hvac_staff"

# Optional collections introduced after the first stored documents
_LIST_DEFAULTS = ("line_items", "payments", "attachments", "internal_notes", "notes")

_STATUS_VALUES = {s.value for s in JobStatus}

ModelT = TypeVar("ModelT", bound=BaseModel)


class DocumentStore(Protocol):
    """Storage backend: whole-document reads and writes by key."""

    def load(self, key: str) -> Optional[list[dict[str, Any]]]:
        """Return the stored document, or None if nothing was ever saved."""
        ...

    def save_all(self, key: str, documents: list[dict[str, Any]]) -> None:
        ...


class InMemoryStore:
    """Process-local store. Documents are copied in and out."""

    def __init__(self, initial: Optional[dict[str, list[dict[str, Any]]]] = None) -> None:
        self._data: dict[str, str] = {}
        for key, documents in (initial or {}).items():
            self.save_all(key, documents)

    def load(self, key: str) -> Optional[list[dict[str, Any]]]:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def save_all(self, key: str, documents: list[dict[str, Any]]) -> None:
        self._data[key] = json.dumps(documents)


class JsonFileStore:
    """One JSON file per key under ``directory``.

    An unreadable file is renamed to ``<key>.json.corrupt`` before the
    store reports it empty, so the next write cannot overwrite it.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def _quarantine(self, path: Path, reason: str) -> None:
        backup = path.with_name(f"{path.name}.corrupt")
        path.replace(backup)
        logger.warning(
            "Unreadable document %s (%s), moved to %s; starting empty",
            path.name, reason, backup.name,
        )

    def load(self, key: str) -> Optional[list[dict[str, Any]]]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._quarantine(path, str(e))
            return []
        if not isinstance(data, list):
            self._quarantine(path, f"top level is {type(data).__name__}, not a list")
            return []
        return data

    def save_all(self, key: str, documents: list[dict[str, Any]]) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(documents, f, indent=2)
        tmp.replace(path)
        logger.debug("Saved %d record(s) to %s", len(documents), path.name)


def _text_or(doc: dict[str, Any], name: str, default: str) -> None:
    if not isinstance(doc.get(name), str):
        doc[name] = default


def _default_booking_fields(raw: dict[str, Any]) -> dict[str, Any]:
    doc = dict(raw)
    for name in _LIST_DEFAULTS:
        if not isinstance(doc.get(name), list):
            doc[name] = []
    if not isinstance(doc.get("is_invoiced"), bool):
        doc["is_invoiced"] = False
    if not isinstance(doc.get("assigned_staff_ids"), list):
        doc["assigned_staff_ids"] = []

    if not isinstance(doc.get("id"), str) or not doc["id"]:
        doc["id"] = short_id()
    _text_or(doc, "name", DEFAULT_NAME)
    _text_or(doc, "phone", DEFAULT_PHONE)
    _text_or(doc, "service_type", DEFAULT_SERVICE_TYPE)
    _text_or(doc, "preferred_date_time", "")
    if not isinstance(doc.get("created_at"), str) or not doc["created_at"]:
        doc["created_at"] = now_iso()
    doc["team_type"] = resolve_team_type(doc).value

    status = doc.get("status")
    if not isinstance(status, str) or status not in _STATUS_VALUES or status == JobStatus.CONFIRMED.value:
        doc["status"] = (
            JobStatus.ASSIGNED.value if doc["assigned_staff_ids"] else JobStatus.NEW.value
        )
    return doc


def _default_staff_fields(raw: dict[str, Any]) -> dict[str, Any]:
    doc = dict(raw)
    if not isinstance(doc.get("id"), str) or not doc["id"]:
        doc["id"] = f"s{short_id(6)}"
    _text_or(doc, "name", doc["id"])
    team = doc.get("team_type")
    if not isinstance(team, str) or team not in {t.value for t in TeamType}:
        doc["team_type"] = TeamType.REPAIR.value
    return doc


def _validate_with_defaults(
    model: type[ModelT],
    doc: dict[str, Any],
    defaults: Callable[[dict[str, Any]], dict[str, Any]],
    label: str,
) -> ModelT:
    """
    Validate ``doc``; whatever still fails is dropped and defaulted, then retried.

    A bad entry inside a list field (one malformed payment, say) drops
    that entry only. Any other bad field is removed and refilled by
    ``defaults``.
    """
    try:
        return model.model_validate(doc)
    except ValidationError as e:
        bad_fields: set[str] = set()
        bad_items: dict[str, set[int]] = {}
        for err in e.errors():
            loc = err["loc"]
            if not loc:
                continue
            name = str(loc[0])
            if len(loc) > 1 and isinstance(loc[1], int) and isinstance(doc.get(name), list):
                bad_items.setdefault(name, set()).add(loc[1])
            else:
                bad_fields.add(name)

        logger.warning(
            "Record %s: defaulting malformed field(s) %s",
            label, ", ".join(sorted(bad_fields | set(bad_items))),
        )
        repaired = {k: v for k, v in doc.items() if k not in bad_fields}
        for name, indices in bad_items.items():
            if name in repaired:
                repaired[name] = [
                    item for i, item in enumerate(repaired[name]) if i not in indices
                ]
        return model.model_validate(defaults(repaired))


def decode_bookings(documents: list[Any]) -> list[Booking]:
    """Validate stored booking documents, defaulting fields one by one.

    Only entries that are not JSON objects at all are skipped.
    """
    bookings: list[Booking] = []
    for index, raw in enumerate(documents):
        if not isinstance(raw, dict):
            logger.warning("Skipping booking document #%d: not an object", index)
            continue
        doc = _default_booking_fields(raw)
        bookings.append(
            _validate_with_defaults(Booking, doc, _default_booking_fields, doc["id"])
        )
    return bookings


def decode_staff(documents: list[Any]) -> list[StaffMember]:
    """Validate stored roster documents, defaulting malformed fields."""
    roster: list[StaffMember] = []
    for index, raw in enumerate(documents):
        if not isinstance(raw, dict):
            logger.warning("Skipping staff document #%d: not an object", index)
            continue
        doc = _default_staff_fields(raw)
        roster.append(
            _validate_with_defaults(StaffMember, doc, _default_staff_fields, doc["id"])
        )
    return roster


def encode(records: list[Any]) -> list[dict[str, Any]]:
    return [r.model_dump(mode="json") for r in records]
