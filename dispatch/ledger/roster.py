"""
Staff roster: enlistment and activation.

Staff are never deleted. Deactivating someone removes them from every
availability query while keeping their history on past bookings.
"""

import logging
import time
from typing import Optional

from dispatch.errors import PersistenceError, StaffNotFoundError
from dispatch.ledger.store import STAFF_KEY, DocumentStore, decode_staff, encode
from dispatch.schemas.booking_schema import (
    StaffMember,
    StaffStatus,
    TeamType,
    UserRole,
)

logger = logging.getLogger(__name__)

DEFAULT_ROSTER: list[StaffMember] = [
    StaffMember(
        id="admin1", name="Main Admin", username="admin",
        phone="0000 000 000", email="admin@arcticflow.ai",
        role=UserRole.ADMIN, team_type=TeamType.REPAIR,
    ),
    StaffMember(
        id="s1", name="Mike Tech", username="mike_repair",
        phone="0412 345 678", email="mike@arcticflow.ai",
        role=UserRole.STAFF, team_type=TeamType.REPAIR, arc_license="AU12345",
    ),
    StaffMember(
        id="s2", name="Sarah Build", username="sarah_install",
        phone="0422 999 000", email="sarah@arcticflow.ai",
        role=UserRole.STAFF, team_type=TeamType.INSTALLATION, arc_license="AU67890",
    ),
]


class Roster:
    """The staff list, persisted under ``hvac_staff``."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        stored = store.load(STAFF_KEY)
        if stored is None:
            self._staff: list[StaffMember] = []
            self._persist([m.model_copy() for m in DEFAULT_ROSTER])
            logger.info("Roster seeded with %d default member(s)", len(self._staff))
        else:
            self._staff = decode_staff(stored)

    def _persist(self, staff: list[StaffMember]) -> None:
        try:
            self._store.save_all(STAFF_KEY, encode(staff))
        except OSError as e:
            raise PersistenceError(f"Could not save roster: {e}") from e
        self._staff = staff

    def all(self) -> list[StaffMember]:
        return list(self._staff)

    def get(self, staff_id: str) -> Optional[StaffMember]:
        for member in self._staff:
            if member.id == staff_id:
                return member
        return None

    def require(self, staff_id: str) -> StaffMember:
        member = self.get(staff_id)
        if member is None:
            raise StaffNotFoundError(f"Staff member {staff_id} not found.")
        return member

    def active_technicians(self) -> list[StaffMember]:
        return [m for m in self._staff if m.active and m.role == UserRole.STAFF]

    def enlist(
        self,
        name: str,
        team_type: TeamType,
        username: str = "",
        phone: str = "",
        email: str = "",
        role: UserRole = UserRole.STAFF,
        arc_license: Optional[str] = None,
    ) -> StaffMember:
        """Add a new, active, available staff member with a ``s<millis>`` id."""
        staff_id = f"s{int(time.time() * 1000)}"
        while self.get(staff_id) is not None:
            staff_id = f"s{int(staff_id[1:]) + 1}"
        member = StaffMember(
            id=staff_id,
            name=name,
            username=username,
            phone=phone,
            email=email,
            role=role,
            team_type=team_type,
            status=StaffStatus.AVAILABLE,
            active=True,
            arc_license=arc_license,
        )
        self._persist(self._staff + [member])
        logger.info("Staff enlisted: %s (%s, %s)", member.name, member.id, team_type.value)
        return member

    def toggle_active(self, staff_id: str) -> StaffMember:
        """Flip a member's active flag."""
        member = self.require(staff_id)
        updated = member.model_copy(update={"active": not member.active})
        self._persist([updated if m.id == staff_id else m for m in self._staff])
        logger.info(
            "Staff %s %s", staff_id, "activated" if updated.active else "deactivated"
        )
        return updated
