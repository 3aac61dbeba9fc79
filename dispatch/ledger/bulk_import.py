"""
Bulk booking import from CSV exports.

Column headers are matched loosely (any header containing ``phone`` is
the phone column, and so on) so exports from different tools load
without remapping. Rows are validated first and previewed; only valid
rows are committed, each through ``BookingLedger.create``, so re-running
an import never creates duplicates.
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional, TextIO, Union

from dispatch.ledger.booking_ledger import BookingLedger
from dispatch.ledger.intake import DEFAULT_SERVICE_TYPE
from dispatch.schemas.booking_schema import Booking
from dispatch.utils import normalize_phone

logger = logging.getLogger(__name__)

IMPORT_DESCRIPTION = "CSV Import"

# Header substring -> row field, checked in this order
HEADER_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "name"),
    ("phone", "phone"),
    ("email", "email"),
    ("service", "service_type"),
    ("address", "address"),
    ("suburb", "suburb"),
    ("date", "date"),
    ("time", "time"),
    ("note", "notes"),
)


@dataclass
class ImportRow:
    """One parsed CSV row plus its validation verdict."""
    line: int
    name: str = ""
    phone: str = ""
    email: str = ""
    service_type: str = ""
    address: str = ""
    suburb: str = ""
    date: str = ""
    time: str = ""
    notes: str = ""
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    def to_candidate(self) -> dict[str, str]:
        return {
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "service_type": self.service_type or DEFAULT_SERVICE_TYPE,
            "description": self.notes or IMPORT_DESCRIPTION,
            "address": self.address,
            "suburb": self.suburb,
            "preferred_date_time": f"{self.date} {self.time}",
        }


@dataclass
class ImportReport:
    created: list[Booking] = field(default_factory=list)
    duplicates: int = 0
    rejected: list[ImportRow] = field(default_factory=list)


def map_row(raw: Mapping[Optional[str], Optional[str]], line: int) -> ImportRow:
    """Fold a raw CSV record into an ``ImportRow`` and validate it."""
    row = ImportRow(line=line)
    for header, value in raw.items():
        if header is None:
            continue
        key = header.strip().lower()
        for needle, attr in HEADER_FIELDS:
            if needle in key:
                setattr(row, attr, (value or "").strip())

    missing = [
        label for label, present in (
            ("name", row.name),
            ("phone or email", normalize_phone(row.phone) or row.email),
            ("address", row.address),
            ("suburb", row.suburb),
            ("date", row.date),
            ("time", row.time),
        )
        if not present
    ]
    if missing:
        row.error = f"Missing required fields: {', '.join(missing)}"
    return row


def parse_rows(stream: TextIO) -> list[ImportRow]:
    """Parse every non-blank data row. Line numbers count the header as line 1."""
    reader = csv.DictReader(stream)
    rows: list[ImportRow] = []
    for raw in reader:
        if not any((v or "").strip() for v in raw.values() if isinstance(v, str)):
            continue
        rows.append(map_row(raw, reader.line_num))
    return rows


def commit_rows(ledger: BookingLedger, rows: Iterable[ImportRow]) -> ImportReport:
    """Create a booking for each valid row; invalid rows are reported, not raised."""
    report = ImportReport()
    for row in rows:
        if not row.is_valid:
            report.rejected.append(row)
            continue
        booking = ledger.create(row.to_candidate())
        if booking is None:
            report.duplicates += 1
        else:
            report.created.append(booking)
    logger.info(
        "Import committed: %d created, %d duplicate(s), %d rejected",
        len(report.created), report.duplicates, len(report.rejected),
    )
    return report


def import_csv(ledger: BookingLedger, source: Union[str, Path]) -> ImportReport:
    with open(source, "r", encoding="utf-8-sig", newline="") as f:
        rows = parse_rows(f)
    for row in rows:
        if not row.is_valid:
            logger.warning("Skipping %s line %d: %s", Path(source).name, row.line, row.error)
    return commit_rows(ledger, rows)
