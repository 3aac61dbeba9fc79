"""
Booking ledger: the single writer of the booking collection.

All booking mutations go through here. Each write replaces a whole
record by id and then persists the full collection, so a reader never
sees a half-applied change. Creation deduplicates silently and
auto-assigns the first free technician from the roster.

Usage:
    ledger = BookingLedger(InMemoryStore())
    booking = ledger.create({"name": "Jo", "address": "1 Main St",
                             "preferred_date_time": "2025-05-20 09:00"})
    ledger.start(booking.id)
"""

import logging
from typing import Any, Mapping, Optional

from dispatch.billing.calculator import (
    FinancialSummary,
    LedgerStats,
    commit_charges,
    default_business_settings,
    derive,
    ledger_stats,
)
from dispatch.errors import (
    BookingNotFoundError,
    CompletionRejectedError,
    PersistenceError,
    ValidationRejectedError,
)
from dispatch.ledger.intake import (
    DEFAULT_DESCRIPTION,
    DEFAULT_PHONE,
    DEFAULT_SERVICE_TYPE,
    is_duplicate,
    resolve_location,
    resolve_name,
    resolve_slot,
    resolve_team_type,
)
from dispatch.ledger.roster import Roster
from dispatch.ledger.state_machine import JobLifecycle, JobTrigger
from dispatch.ledger.store import BOOKINGS_KEY, DocumentStore, decode_bookings, encode
from dispatch.scheduling.availability import AvailabilityResolver
from dispatch.scheduling.slots import format_business_time, format_short_timestamp, now_iso
from dispatch.schemas.booking_schema import (
    Attachment,
    Booking,
    BusinessSettings,
    CompletionReport,
    InternalNote,
    JobStatus,
    LineItem,
    Payment,
    StaffMember,
    TeamType,
)
from dispatch.utils import short_id

logger = logging.getLogger(__name__)

ADMIN_AUTHOR = "Admin Dashboard"


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None or value == "" else str(value)


class BookingLedger:
    """Owns the booking collection and the roster it is assigned from."""

    def __init__(
        self,
        store: DocumentStore,
        business: Optional[BusinessSettings] = None,
        roster: Optional[Roster] = None,
    ) -> None:
        self._store = store
        self.business = business or default_business_settings()
        self.roster = roster or Roster(store)
        self._bookings: list[Booking] = decode_bookings(store.load(BOOKINGS_KEY) or [])
        self.resolver = AvailabilityResolver(self.roster.all, self.all)
        logger.info(
            "Ledger loaded: %d booking(s), %d staff",
            len(self._bookings), len(self.roster.all()),
        )

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def all(self) -> list[Booking]:
        """All bookings, most recently created first."""
        return list(self._bookings)

    def get(self, booking_id: str) -> Optional[Booking]:
        for booking in self._bookings:
            if booking.id == booking_id:
                return booking
        return None

    def require(self, booking_id: str) -> Booking:
        booking = self.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found.")
        return booking

    def bookings_for_staff(self, staff_id: str) -> list[Booking]:
        """Jobs currently assigned to one technician."""
        return [b for b in self._bookings if staff_id in b.assigned_staff_ids]

    def financials(self, booking_id: str) -> FinancialSummary:
        return derive(self.require(booking_id), self.business)

    def stats(self) -> LedgerStats:
        return ledger_stats(self._bookings, self.roster.all())

    def availability_summary_text(self, days: int = 7) -> str:
        return self.resolver.format_summary(self.resolver.summary(days=days))

    # ------------------------------------------------------------------ #
    # Roster
    # ------------------------------------------------------------------ #

    def staff_by_id(self, staff_id: str) -> Optional[StaffMember]:
        return self.roster.get(staff_id)

    def enlist_staff(self, name: str, team_type: TeamType, **details: Any) -> StaffMember:
        return self.roster.enlist(name, team_type, **details)

    def toggle_staff(self, staff_id: str) -> StaffMember:
        """Activate or deactivate a member. Their existing assignments are left alone."""
        return self.roster.toggle_active(staff_id)

    # ------------------------------------------------------------------ #
    # Create / update / delete
    # ------------------------------------------------------------------ #

    def create(self, candidate: Mapping[str, Any]) -> Optional[Booking]:
        """
        Create a booking from raw candidate fields.

        Returns the stored booking, or None when the candidate duplicates
        a live booking (same name, address and slot). Duplicates are not
        an error.
        """
        name = resolve_name(candidate)
        location = resolve_location(candidate)
        slot = resolve_slot(candidate)

        if is_duplicate(name, location.address, slot, self._bookings):
            logger.info("Duplicate booking dropped: %s at %s", name, slot)
            return None

        team_type = resolve_team_type(candidate)

        assigned = [s for s in candidate.get("assigned_staff_ids") or [] if s]
        if not assigned:
            technician = self.resolver.first_available(slot, team_type)
            assigned = [technician.id] if technician else []
            if technician is None:
                logger.info("No %s technician free at %s; left unassigned", team_type.value, slot)

        booking = Booking(
            id=short_id(),
            name=name,
            phone=_text(candidate.get("phone"), DEFAULT_PHONE),
            email=_text(candidate.get("email"), ""),
            service_type=_text(candidate.get("service_type"), DEFAULT_SERVICE_TYPE),
            system_type=candidate.get("system_type"),
            team_type=team_type,
            description=_text(candidate.get("description"), DEFAULT_DESCRIPTION),
            location=location,
            preferred_date_time=slot,
            status=JobStatus.ASSIGNED if assigned else JobStatus.NEW,
            created_at=now_iso(),
            assigned_staff_ids=assigned,
            estimated_cost=_optional_str(candidate.get("estimated_cost")),
            line_items=list(candidate.get("line_items") or []),
            payments=list(candidate.get("payments") or []),
            is_invoiced=False,
        )

        self._persist([booking] + self._bookings)
        logger.info(
            "Booking created: %s for %s at %s (%s, %s)",
            booking.id, booking.name, slot, team_type.value, booking.status.value,
        )
        return booking

    def update(self, booking: Booking) -> Booking:
        """
        Replace the stored record with the same id.

        The caller supplies the complete, already-merged record. Cancelled
        records are stripped of their assignment and ``Confirmed`` is read
        as New or Assigned depending on staffing.

        Raises:
            BookingNotFoundError: If no booking has this id.
            ValidationRejectedError: If staffing and status disagree, or
                existing internal notes were edited or removed.
        """
        current = self.require(booking.id)
        booking = self._normalize_status(booking)

        if not JobLifecycle.is_consistent(booking.status, booking.assigned_staff_ids):
            raise ValidationRejectedError(
                f"Status '{booking.status.value}' does not match "
                f"{len(booking.assigned_staff_ids)} assigned technician(s)."
            )
        kept = len(current.internal_notes)
        if kept and booking.internal_notes[-kept:] != current.internal_notes:
            raise ValidationRejectedError("Internal notes are append-only.")

        self._persist([booking if b.id == booking.id else b for b in self._bookings])
        logger.debug("Booking updated: %s (%s)", booking.id, booking.status.value)
        return booking

    def delete(self, booking_id: str) -> None:
        """Remove a booking along with its payments and attachments."""
        self.require(booking_id)
        self._persist([b for b in self._bookings if b.id != booking_id])
        logger.info("Booking deleted: %s", booking_id)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def reassign(
        self, booking_id: str, staff_id: Optional[str], author: str = ADMIN_AUTHOR
    ) -> Booking:
        """Assign one technician (or clear the assignment) and log it."""
        booking = self.require(booking_id)
        member = self.roster.require(staff_id) if staff_id else None
        trigger = JobTrigger.ASSIGN if member else JobTrigger.UNASSIGN
        status = JobLifecycle.apply(booking.status, trigger)

        note = self._note(
            f"Personnel Reassignment: [{member.name if member else 'Unassigned'}]", author
        )
        updated = booking.model_copy(update={
            "assigned_staff_ids": [member.id] if member else [],
            "status": status,
            "internal_notes": [note, *booking.internal_notes],
        })
        logger.info(
            "Booking %s reassigned to %s (%s -> %s)",
            booking_id, member.id if member else "nobody",
            booking.status.value, status.value,
        )
        return self.update(updated)

    def start(self, booking_id: str) -> Booking:
        """Technician commences an assigned job."""
        booking = self.require(booking_id)
        status = JobLifecycle.apply(booking.status, JobTrigger.START)
        return self.update(booking.model_copy(update={"status": status}))

    def complete(self, booking_id: str, report: CompletionReport) -> Booking:
        """
        Close out an in-progress job with the technician's report.

        Raises:
            InvalidStatusTransitionError: If the job is not In Progress.
            CompletionRejectedError: If the electrical safety check is not
                attested or the customer signature is missing.
        """
        booking = self.require(booking_id)
        status = JobLifecycle.apply(booking.status, JobTrigger.COMPLETE)

        if not report.safety_checks.electrical:
            raise CompletionRejectedError(
                "Mandatory Safety Check Required: Electrical Standards"
            )
        if not report.customer_signature.strip():
            raise CompletionRejectedError("Mandatory: Customer Digital Verification Seal")

        technician = None
        for staff_id in booking.assigned_staff_ids:
            technician = self.roster.get(staff_id)
            if technician is not None:
                break
        final_report = report.model_copy(update={
            "arc_license": (technician.arc_license if technician else None) or "N/A",
            "completed_at": format_business_time(),
        })
        logger.info("Booking %s completed", booking_id)
        return self.update(booking.model_copy(update={
            "status": status,
            "completion_report": final_report,
        }))

    def cancel(self, booking_id: str, author: str = ADMIN_AUTHOR) -> Booking:
        """Cancel a job, releasing its technician and slot."""
        booking = self.require(booking_id)
        status = JobLifecycle.apply(booking.status, JobTrigger.CANCEL)
        note = self._note("Job Cancelled", author)
        cancelled = self.update(booking.model_copy(update={
            "status": status,
            "assigned_staff_ids": [],
            "internal_notes": [note, *booking.internal_notes],
        }))
        logger.info("Booking %s cancelled", booking_id)
        return cancelled

    # ------------------------------------------------------------------ #
    # Job records
    # ------------------------------------------------------------------ #

    def add_internal_note(self, booking_id: str, text: str, author: str) -> Booking:
        if not text.strip():
            raise ValidationRejectedError("Internal note text is required.")
        booking = self.require(booking_id)
        note = self._note(text.strip(), author)
        return self.update(booking.model_copy(
            update={"internal_notes": [note, *booking.internal_notes]}
        ))

    def add_line_item(self, booking_id: str, description: str, amount: float) -> Booking:
        """Add a manual charge. The booking needs re-invoicing afterwards."""
        if not description.strip():
            raise ValidationRejectedError("Charge description is required.")
        booking = self.require(booking_id)
        item = LineItem(id=short_id(5), description=description.strip(), amount=amount)
        return self.update(booking.model_copy(update={
            "line_items": [*booking.line_items, item],
            "is_invoiced": False,
        }))

    def record_payment(
        self,
        booking_id: str,
        amount: float,
        method: str,
        note: Optional[str] = None,
        recorded_by: Optional[str] = None,
    ) -> Booking:
        if amount <= 0:
            raise ValidationRejectedError(f"Payment amount must be positive, got {amount}")
        booking = self.require(booking_id)
        payment = Payment(
            id=short_id(5),
            amount=amount,
            date=now_iso(),
            method=method,
            note=note,
            recorded_by=recorded_by,
        )
        logger.info("Payment of %.2f recorded on %s", amount, booking_id)
        return self.update(booking.model_copy(update={"payments": [*booking.payments, payment]}))

    def set_labor_hours(self, booking_id: str, hours: float) -> Booking:
        if hours < 0:
            raise ValidationRejectedError(f"Labour hours cannot be negative, got {hours}")
        booking = self.require(booking_id)
        return self.update(booking.model_copy(update={"labor_hours": hours}))

    def add_equipment(self, booking_id: str, model: str) -> Booking:
        if not model.strip():
            raise ValidationRejectedError("Equipment model is required.")
        booking = self.require(booking_id)
        equipment = [*(booking.equipment_used or []), model.strip()]
        return self.update(booking.model_copy(update={"equipment_used": equipment}))

    def remove_equipment(self, booking_id: str, index: int) -> Booking:
        booking = self.require(booking_id)
        equipment = list(booking.equipment_used or [])
        if not 0 <= index < len(equipment):
            raise ValidationRejectedError(f"No equipment entry at position {index}.")
        del equipment[index]
        return self.update(booking.model_copy(update={"equipment_used": equipment}))

    def add_attachment(
        self, booking_id: str, name: str, url: str, kind: str = "document"
    ) -> Booking:
        booking = self.require(booking_id)
        attachment = Attachment(
            id=short_id(5), name=name, kind=kind, url=url, uploaded_at=now_iso()
        )
        return self.update(booking.model_copy(
            update={"attachments": [*booking.attachments, attachment]}
        ))

    def commit_charges(self, booking_id: str) -> Booking:
        """Snapshot labour, equipment and GST into line items and mark invoiced."""
        return self.update(commit_charges(self.require(booking_id), self.business))

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _normalize_status(booking: Booking) -> Booking:
        if booking.status == JobStatus.CONFIRMED:
            status = JobStatus.ASSIGNED if booking.assigned_staff_ids else JobStatus.NEW
            return booking.model_copy(update={"status": status})
        if booking.status == JobStatus.CANCELLED and booking.assigned_staff_ids:
            return booking.model_copy(update={"assigned_staff_ids": []})
        return booking

    @staticmethod
    def _note(text: str, author: str) -> InternalNote:
        return InternalNote(
            id=short_id(5), text=text, author=author, timestamp=format_short_timestamp()
        )

    def _persist(self, bookings: list[Booking]) -> None:
        """Write ``bookings`` to the store, then adopt them. A failed write changes nothing."""
        try:
            self._store.save_all(BOOKINGS_KEY, encode(bookings))
        except OSError as e:
            raise PersistenceError(f"Could not save bookings: {e}") from e
        self._bookings = bookings
