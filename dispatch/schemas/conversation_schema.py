"""Conversation transcript and extraction-result schemas."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Speaker(str, Enum):
    AGENT = "agent"
    USER = "user"


class TranscriptTurn(BaseModel):
    """A single turn in a conversation transcript."""

    speaker: Speaker
    text: str

    def render(self) -> str:
        label = "Agent" if self.speaker == Speaker.AGENT else "User"
        return f"{label}: {self.text}"


class ExtractionResult(BaseModel):
    """Structured booking state read back from a transcript by the oracle.

    ``is_complete`` means all six fields were gathered and a summary was
    read back; ``is_confirmed`` means the user explicitly affirmed it.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    phone: Optional[str] = None
    service_type: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    preferred_date_time: Optional[str] = None
    is_complete: bool = Field(default=False, alias="isComplete")
    is_confirmed: bool = Field(default=False, alias="isConfirmed")

    @property
    def ready_to_commit(self) -> bool:
        return self.is_complete and self.is_confirmed

    def to_candidate(self) -> dict[str, Any]:
        """Booking candidate fields for ``BookingLedger.create``."""
        return {
            "name": self.name,
            "phone": self.phone,
            "service_type": self.service_type,
            "description": self.description,
            "address": self.address,
            "preferred_date_time": self.preferred_date_time,
        }


EXTRACTION_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "phone": {"type": "string"},
        "service_type": {"type": "string"},
        "description": {"type": "string"},
        "address": {"type": "string"},
        "preferred_date_time": {
            "type": "string",
            "description": (
                "Must be in format YYYY-MM-DD HH:mm. DO NOT accept ASAP or relative "
                "dates. If user says ASAP, use the next available slot you suggested."
            ),
        },
        "isComplete": {
            "type": "boolean",
            "description": "True if all 6 core fields are collected AND user has been shown a summary.",
        },
        "isConfirmed": {
            "type": "boolean",
            "description": (
                "True ONLY if the user has explicitly said 'Yes', 'Confirm', 'Proceed', "
                "or similar AFTER being shown the summary."
            ),
        },
    },
    "required": [
        "name", "phone", "service_type", "description", "address",
        "preferred_date_time", "isComplete", "isConfirmed",
    ],
}
