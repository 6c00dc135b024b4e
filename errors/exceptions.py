"""Domain-specific exceptions for the generation stream client.

These exceptions let callers distinguish between a service that refused
the request, a connection that broke mid-stream, and a stream that ended
without a ``complete`` event.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.stream_outcome import StreamOutcome


class StreamError(Exception):
    """Base class for generation stream errors."""


class GenerationServiceError(StreamError):
    """The generation service answered with a non-2xx status before streaming.

    ``detail`` is the service's own ``error`` field when the body is JSON,
    otherwise a truncated body.
    """

    def __init__(self, status_code: int, detail: str, url: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        self.url = url
        super().__init__(f"Generation service {status_code}: {detail} ({url})")


class StreamTransportError(StreamError):
    """The connection failed while opening or reading the stream.

    Raised from the underlying ``httpx.TransportError``.  The stream is not
    resumable; the caller has to restart the whole request.
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Stream {path} failed: {message}")


class StreamFailedError(StreamError):
    """The stream ended without a ``complete`` event.

    Carries the full :class:`~models.stream_outcome.StreamOutcome` so callers
    can show ``outcome.message`` and inspect the failure kind.
    """

    def __init__(self, outcome: StreamOutcome) -> None:
        self.outcome = outcome
        super().__init__(outcome.message or "Stream ended without a result")
