from dispatch.ledger.booking_ledger import BookingLedger
from dispatch.ledger.roster import Roster
from dispatch.ledger.state_machine import JobLifecycle, JobTrigger
from dispatch.ledger.store import DocumentStore, InMemoryStore, JsonFileStore

__all__ = [
    "BookingLedger",
    "Roster",
    "JobLifecycle",
    "JobTrigger",
    "DocumentStore",
    "InMemoryStore",
    "JsonFileStore",
]
