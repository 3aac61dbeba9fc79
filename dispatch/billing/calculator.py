"""
Invoice arithmetic derived from a booking's authoritative fields.

Totals are never stored on a booking. ``derive`` recomputes them from
labour hours, equipment used, manual line items and payments every time.
``commit_charges`` is the one mutating step: it snapshots the computed
labour, equipment and GST lines into ``line_items``. Those synthesized
lines carry a description marker so ``derive`` can skip them and never
count the same charge twice.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from dispatch.config import settings
from dispatch.schemas.booking_schema import (
    Booking,
    BusinessSettings,
    EquipmentItem,
    JobStatus,
    LineItem,
    StaffMember,
    UserRole,
)
from dispatch.utils import short_id

logger = logging.getLogger(__name__)

LABOUR_MARKER = "Labour:"
EQUIPMENT_MARKER = "Equipment:"
GST_MARKER = "GST"
SYNTHESIZED_MARKERS: tuple[str, ...] = (LABOUR_MARKER, EQUIPMENT_MARKER, GST_MARKER)

DEFAULT_EQUIPMENT_CATALOG: list[EquipmentItem] = [
    EquipmentItem(model="7kW Split System Unit", cost=1450),
    EquipmentItem(model="5kW Split System Unit", cost=1100),
    EquipmentItem(model="Ducted Zone Controller", cost=450),
    EquipmentItem(model="Inverter Compressor", cost=890),
]


def default_business_settings() -> BusinessSettings:
    """Business settings built from configuration plus the stock equipment catalog."""
    biz = settings.business
    return BusinessSettings(
        name=biz.name,
        address=biz.address,
        phone=biz.phone,
        email=biz.email,
        tax_id=biz.tax_id,
        hourly_rate=biz.hourly_rate,
        gst_rate=biz.gst_rate,
        equipment_catalog=[item.model_copy() for item in DEFAULT_EQUIPMENT_CATALOG],
    )


@dataclass(frozen=True)
class FinancialSummary:
    """Read-only projection of a booking's money."""
    labor_subtotal: float
    equipment_subtotal: float
    manual_subtotal: float
    subtotal: float
    tax: float
    total: float
    paid: float
    balance: float


def _money(value: float) -> float:
    return round(value, 2)


def is_synthesized(item: LineItem) -> bool:
    """True for lines written by ``commit_charges`` rather than entered by hand."""
    return item.description.lstrip().startswith(SYNTHESIZED_MARKERS)


def manual_line_items(booking: Booking) -> list[LineItem]:
    return [li for li in booking.line_items if not is_synthesized(li)]


def derive(booking: Booking, business: BusinessSettings) -> FinancialSummary:
    """
    Compute subtotals, GST, total and outstanding balance.

    Unknown equipment models contribute nothing. An overpaid booking has
    a negative balance; it is reported as-is.
    """
    labor = (booking.labor_hours or 0) * business.hourly_rate
    equipment = sum(business.equipment_cost(model) for model in booking.equipment_used or [])
    manual = sum(li.amount for li in manual_line_items(booking))

    subtotal = labor + equipment + manual
    tax = subtotal * business.gst_rate / 100
    total = subtotal + tax
    paid = sum(p.amount for p in booking.payments)

    return FinancialSummary(
        labor_subtotal=_money(labor),
        equipment_subtotal=_money(equipment),
        manual_subtotal=_money(manual),
        subtotal=_money(subtotal),
        tax=_money(tax),
        total=_money(total),
        paid=_money(paid),
        balance=_money(total - paid),
    )


def commit_charges(booking: Booking, business: BusinessSettings) -> Booking:
    """
    Replace synthesized lines with fresh ones and mark the booking invoiced.

    Manual lines are kept untouched and in order. Running this twice
    without changing hours or equipment yields the same total.
    """
    summary = derive(booking, business)
    items = [li.model_copy() for li in manual_line_items(booking)]

    hours = booking.labor_hours or 0
    if hours > 0:
        items.append(LineItem(
            id=f"L{short_id(6)}",
            description=f"{LABOUR_MARKER} {hours:g}hrs @ ${business.hourly_rate:g}/hr",
            amount=summary.labor_subtotal,
        ))
    for model in booking.equipment_used or []:
        items.append(LineItem(
            id=f"E{short_id(6)}",
            description=f"{EQUIPMENT_MARKER} {model}",
            amount=business.equipment_cost(model),
        ))
    items.append(LineItem(
        id=f"G{short_id(6)}",
        description=f"{GST_MARKER} ({business.gst_rate:g}%)",
        amount=summary.tax,
    ))

    logger.info(
        "Charges committed for booking %s: total %.2f (%d line(s))",
        booking.id, summary.total, len(items),
    )
    return booking.model_copy(update={"line_items": items, "is_invoiced": True})


@dataclass(frozen=True)
class LedgerStats:
    """Headline numbers for the admin overview."""
    invoiced: float
    paid: float
    balance: float
    active_technicians: int
    pending_jobs: int


def ledger_stats(bookings: Iterable[Booking], staff: Iterable[StaffMember]) -> LedgerStats:
    """Sum of recorded line items and payments across all bookings, plus workload counts."""
    bookings = list(bookings)
    invoiced = sum(li.amount for b in bookings for li in b.line_items)
    paid = sum(p.amount for b in bookings for p in b.payments)
    return LedgerStats(
        invoiced=_money(invoiced),
        paid=_money(paid),
        balance=_money(invoiced - paid),
        active_technicians=sum(1 for s in staff if s.role == UserRole.STAFF and s.active),
        pending_jobs=sum(
            1 for b in bookings
            if b.status not in (JobStatus.COMPLETED, JobStatus.CANCELLED)
        ),
    )
