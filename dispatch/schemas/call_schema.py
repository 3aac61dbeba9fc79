"""Outbound confirmation call models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class CallStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CallResult(BaseModel):
    """Structured outcome the call assistant reports at hang-up."""
    booking_confirmed: bool = False
    selected_time: Optional[str] = None
    urgency: Urgency = Urgency.LOW
    notes: str = ""

    @field_validator("urgency", mode="before")
    @classmethod
    def normalize_urgency(cls, v):
        if isinstance(v, Urgency):
            return v
        text = str(v).strip().lower() if v is not None else ""
        return text if text in {u.value for u in Urgency} else Urgency.LOW


class StartCallParams(BaseModel):
    phone_number: str
    customer_name: str
    job_type: str
    call_reason: str
    available_time_slots: str
    booking_id: Optional[str] = None


class OutboundCallRecord(BaseModel):
    """Session record for one AI outbound call. Lives for the process only."""
    id: str
    booking_id: Optional[str] = None
    phone_number: str
    customer_name: str
    status: CallStatus = CallStatus.PENDING
    result: Optional[CallResult] = None
    created_at: str
