"""Exception hierarchy for the dispatch engine.

Duplicate submissions are deliberately absent: they are dropped silently
by the ledger, not reported.
"""


class DispatchError(Exception):
    """Base class for all dispatch engine errors."""


class ValidationRejectedError(DispatchError):
    """An operation was refused synchronously; no state was changed."""


class CompletionRejectedError(ValidationRejectedError):
    """Job completion attempted without safety attestation or customer sign-off."""


class InvalidStatusTransitionError(ValidationRejectedError):
    """Raised when a job status change is not valid from the current status."""


class BookingNotFoundError(DispatchError):
    """No booking exists with the given id."""


class StaffNotFoundError(DispatchError):
    """No roster entry exists with the given id."""


class ExtractionError(DispatchError):
    """The extraction oracle failed or returned a non-conforming result."""


class ConversationProviderError(DispatchError):
    """The conversational provider failed to produce a turn."""


class OutboundCallError(DispatchError):
    """The outbound voice-call provider refused or failed to start a call."""


class SessionClosedError(DispatchError):
    """The conversational session no longer accepts input."""


class PersistenceError(DispatchError):
    """The document store could not save; in-memory state was left unchanged."""
