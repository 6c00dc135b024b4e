"""Terminal result of consuming one generation stream."""

from __future__ import annotations

from enum import Enum

from errors.exceptions import StreamFailedError
from models.base import CamelModel
from models.stream_events import CompleteEvent


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    ERROR_CAPTURED = "error_captured"
    PREMATURE_CLOSE = "premature_close"


class FailureKind(str, Enum):
    """Why a stream failed.

    Everything except ``SERVER_ERROR`` is a guess derived from how long the
    connection stayed open; the consumer cannot observe the real cause.
    """

    SERVER_ERROR = "server_error"
    EARLY_CLOSE = "early_close"
    SHORT_TIMEOUT = "short_timeout"
    LONG_TIMEOUT = "long_timeout"
    INTERRUPTED = "interrupted"


class FailureReason(CamelModel):
    kind: FailureKind
    message: str


class StreamOutcome(CamelModel):
    """What the caller gets back once the stream has ended."""

    status: OutcomeStatus
    failure_reason: FailureReason | None = None
    result: CompleteEvent | None = None
    elapsed_seconds: float = 0.0
    event_count: int = 0

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.COMPLETED

    @property
    def message(self) -> str | None:
        """User-facing failure message, ``None`` on success."""
        return self.failure_reason.message if self.failure_reason else None

    def raise_for_failure(self) -> CompleteEvent:
        """Return the ``complete`` payload or raise :class:`StreamFailedError`."""
        if not self.ok or self.result is None:
            raise StreamFailedError(self)
        return self.result
