"""Booking, roster and business-settings data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TeamType(str, Enum):
    REPAIR = "Repair"
    INSTALLATION = "Installation"


class JobStatus(str, Enum):
    """Lifecycle status of a booking.

    ``CONFIRMED`` is kept for stored documents that carry it; none of the
    ledger operations move a booking into it.
    """
    NEW = "New"
    CONFIRMED = "Confirmed"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class UserRole(str, Enum):
    ADMIN = "Admin"
    STAFF = "Staff"


class StaffStatus(str, Enum):
    AVAILABLE = "Available"
    BUSY = "Busy"
    OFFLINE = "Offline"


class Location(BaseModel):
    address: str = ""
    suburb: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None


class LineItem(BaseModel):
    id: str
    description: str
    amount: float


class Payment(BaseModel):
    id: str
    amount: float
    date: str
    method: str
    note: Optional[str] = None
    recorded_by: Optional[str] = None


class Attachment(BaseModel):
    id: str
    name: str
    kind: str = "document"  # "image" | "document"
    url: str
    uploaded_at: str


class InternalNote(BaseModel):
    id: str
    text: str
    author: str
    timestamp: str


class SafetyChecks(BaseModel):
    electrical: bool = False
    leak_check: bool = False
    pressure_test: bool = False
    airflow_balanced: bool = False
    mounting_secure: bool = False


class CompletionReport(BaseModel):
    """Technician sign-off captured when a job is closed out."""
    work_performed: str = ""
    parts_used: list[str] = Field(default_factory=list)
    system_brand: str = ""
    system_model: str = ""
    serial_number: str = ""
    capacity_kw: str = ""
    refrigerant_type: str = "R32"
    refrigerant_amount_kg: float = 0.0
    safety_checks: SafetyChecks = Field(default_factory=SafetyChecks)
    arc_license: str = ""
    technician_notes: str = ""
    customer_name: str = ""
    customer_signature: str = ""
    completed_at: str = ""
    photos: list[str] = Field(default_factory=list)


class Booking(BaseModel):
    """A service job. Totals are never stored here; see billing.calculator."""
    id: str
    name: str
    phone: str
    email: str = ""
    service_type: str
    system_type: Optional[str] = None
    team_type: TeamType
    description: str = ""
    location: Location = Field(default_factory=Location)
    preferred_date_time: str
    status: JobStatus = JobStatus.NEW
    created_at: str
    assigned_staff_ids: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    internal_notes: list[InternalNote] = Field(default_factory=list)
    estimated_cost: Optional[str] = None
    line_items: list[LineItem] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    is_invoiced: bool = False
    completion_report: Optional[CompletionReport] = None
    attachments: list[Attachment] = Field(default_factory=list)
    labor_hours: Optional[float] = None
    equipment_used: Optional[list[str]] = None


class StaffMember(BaseModel):
    """Roster entry. Deactivated, never deleted."""
    id: str
    name: str
    username: str = ""
    phone: str = ""
    email: str = ""
    role: UserRole = UserRole.STAFF
    team_type: TeamType
    status: StaffStatus = StaffStatus.AVAILABLE
    active: bool = True
    arc_license: Optional[str] = None


class EquipmentItem(BaseModel):
    model: str
    cost: float


class BusinessSettings(BaseModel):
    """Invoice header details and billing rates."""
    name: str
    address: str = ""
    phone: str = ""
    email: str = ""
    tax_id: str = ""
    logo_url: Optional[str] = None
    hourly_rate: float
    gst_rate: float = 10.0
    equipment_catalog: list[EquipmentItem] = Field(default_factory=list)

    def equipment_cost(self, model: str) -> float:
        """Catalog cost for ``model``; unknown models cost nothing."""
        for item in self.equipment_catalog:
            if item.model == model:
                return item.cost
        return 0.0
