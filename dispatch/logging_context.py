"""Session correlation logging context.

Attaches the active conversation session id to every log record so a
single chat or voice intake can be traced from first turn to commit.

Usage:
    from dispatch.logging_context import get_session_logger, set_session_id

    set_session_id("CHAT-abc123")
    logger = get_session_logger(__name__)
    logger.info("Checkpoint started")  # record.session_id == "CHAT-abc123"
"""

import logging
from contextvars import ContextVar

_session_id: ContextVar[str] = ContextVar("session_id", default="NO_SESSION")


def set_session_id(session_id: str) -> None:
    """Set the correlation ID for the current async context."""
    _session_id.set(session_id)


def get_session_id() -> str:
    """Retrieve the current correlation ID."""
    return _session_id.get()


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger with the SessionIdFilter attached.

    The filter adds ``session_id`` to each record so formatters can
    include ``%(session_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger


def attach_session_filter(handler: logging.Handler) -> None:
    """Give ``handler`` the filter so any logger's records can use ``%(session_id)s``."""
    if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
        handler.addFilter(SessionIdFilter())
