"""Streaming event consumer: byte stream → dispatched events → outcome.

Reads the body of a generation/grading response, reassembles frames that
were split across network chunks, dispatches each event to the caller's
handlers in stream order, and finally reports how the stream ended.

Session lifecycle::

    READING --stream ends, complete seen--> COMPLETED
    READING --stream ends, error seen-----> ERROR_CAPTURED
    READING --stream ends, neither--------> PREMATURE_CLOSE
    READING --read raises / cancelled-----> ABORTED (exception propagates)

An ``error`` event is recorded but does not stop consumption: a later
``complete`` event still wins.  When several ``error`` events arrive the
last one is reported.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterable, Callable

from models.stream_events import (
    CompleteEvent,
    ContentEvent,
    ErrorEvent,
    ProgressEvent,
    SectionEvent,
    StreamEvent,
)
from models.stream_outcome import (
    FailureKind,
    FailureReason,
    OutcomeStatus,
    StreamOutcome,
)
from services.frame_decoder import FrameDecoder, decode_frame

logger = logging.getLogger(__name__)

# Premature-close heuristics (seconds).  Serverless platforms cut requests
# at roughly 10s and 60s depending on plan.
SHORT_TIMEOUT_WINDOW = (9.0, 12.0)
LONG_TIMEOUT_WINDOW = (55.0, 65.0)
EARLY_CLOSE_THRESHOLD = 15.0

Handler = Callable[[Any], Any]


class SessionState(str, Enum):
    READING = "reading"
    COMPLETED = "completed"
    ERROR_CAPTURED = "error_captured"
    PREMATURE_CLOSE = "premature_close"
    ABORTED = "aborted"


@dataclass
class EventHandlers:
    """Per-type callbacks.  Each may be a function or a coroutine function.

    Handlers run before the next frame is read, so a slow handler delays
    the stream.  ``on_content`` receives chunks, not the accumulated text.
    """

    on_progress: Handler | None = None
    on_content: Handler | None = None
    on_section: Handler | None = None
    on_complete: Handler | None = None
    on_error: Handler | None = None


def classify_premature_close(elapsed_seconds: float) -> FailureReason:
    """Guess why a stream closed without ``complete`` or ``error``.

    Best-effort UX hint only: the buckets match common platform request
    limits, but the real cause is never visible from the client side.
    """
    seconds = round(elapsed_seconds)
    low, high = SHORT_TIMEOUT_WINDOW
    if low <= elapsed_seconds <= high:
        return FailureReason(
            kind=FailureKind.SHORT_TIMEOUT,
            message=(
                f"The request may have timed out after {seconds} seconds. "
                "The hosting platform's short request limit (about 10 seconds) "
                "was probably reached."
            ),
        )
    low, high = LONG_TIMEOUT_WINDOW
    if low <= elapsed_seconds <= high:
        return FailureReason(
            kind=FailureKind.LONG_TIMEOUT,
            message=(
                f"The request may have timed out after {seconds} seconds. "
                "The hosting platform's long request limit (about 60 seconds) "
                "was probably reached."
            ),
        )
    if elapsed_seconds < EARLY_CLOSE_THRESHOLD:
        return FailureReason(
            kind=FailureKind.EARLY_CLOSE,
            message=(
                "The connection closed unexpectedly. "
                "This is likely a server error; please try again."
            ),
        )
    return FailureReason(
        kind=FailureKind.INTERRUPTED,
        message=f"The stream was interrupted after {seconds} seconds. Please try again.",
    )


async def _call(handler: Handler | None, arg: Any) -> None:
    if handler is None:
        return
    result = handler(arg)
    if inspect.isawaitable(result):
        await result


class StreamSession:
    """Working state for one stream: buffer, flags, captured error.

    One session per request; nothing here is shared between sessions.
    """

    def __init__(
        self,
        handlers: EventHandlers | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        started_at: float | None = None,
    ) -> None:
        self.handlers = handlers or EventHandlers()
        self._clock = clock
        self._frames = FrameDecoder()
        self.started_at = clock() if started_at is None else started_at
        self.state = SessionState.READING
        self.completed = False
        self.error_message: str | None = None
        self.result: CompleteEvent | None = None
        self.event_count = 0

    @property
    def buffer(self) -> str:
        """Unterminated trailing fragment not yet dispatched."""
        return self._frames.buffer

    async def feed(self, chunk: bytes) -> None:
        """Decode *chunk* and dispatch every frame it completes."""
        if self.state != SessionState.READING:
            raise RuntimeError(f"Stream session already finished ({self.state.value})")
        for frame in self._frames.feed(chunk):
            event = decode_frame(frame)
            if event is not None:
                await self._dispatch(event)

    async def _dispatch(self, event: StreamEvent) -> None:
        self.event_count += 1
        handlers = self.handlers
        if isinstance(event, ProgressEvent):
            await _call(handlers.on_progress, event.message)
        elif isinstance(event, ContentEvent):
            await _call(handlers.on_content, event.chunk)
        elif isinstance(event, SectionEvent):
            await _call(handlers.on_section, event.section)
        elif isinstance(event, CompleteEvent):
            self.completed = True
            self.result = event
            await _call(handlers.on_complete, event)
        elif isinstance(event, ErrorEvent):
            self.error_message = event.message
            await _call(handlers.on_error, event.message)
        else:
            raise TypeError(f"Unhandled stream event: {event!r}")

    def abort(self) -> None:
        self.state = SessionState.ABORTED

    def finish(self) -> StreamOutcome:
        """Close the session and classify the terminal outcome."""
        leftover = self._frames.flush()
        if leftover:
            logger.debug("Stream ended with unterminated frame: %.80r", leftover)

        elapsed = self._clock() - self.started_at
        if self.completed:
            self.state = SessionState.COMPLETED
            return StreamOutcome(
                status=OutcomeStatus.COMPLETED,
                result=self.result,
                elapsed_seconds=elapsed,
                event_count=self.event_count,
            )

        if self.error_message is not None:
            self.state = SessionState.ERROR_CAPTURED
            reason = FailureReason(kind=FailureKind.SERVER_ERROR, message=self.error_message)
            status = OutcomeStatus.ERROR_CAPTURED
        else:
            self.state = SessionState.PREMATURE_CLOSE
            reason = classify_premature_close(elapsed)
            status = OutcomeStatus.PREMATURE_CLOSE

        logger.warning(
            "Stream ended without result after %.1fs (%d events): %s (%s)",
            elapsed, self.event_count, reason.kind.value, reason.message,
        )
        return StreamOutcome(
            status=status,
            failure_reason=reason,
            elapsed_seconds=elapsed,
            event_count=self.event_count,
        )


async def consume_stream(
    chunks: AsyncIterable[bytes],
    handlers: EventHandlers | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    started_at: float | None = None,
) -> StreamOutcome:
    """Consume *chunks* until exhausted and return the terminal outcome.

    Args:
        chunks: Response body as an async iterable of raw bytes
            (e.g. ``httpx.Response.aiter_bytes()``).
        handlers: Per-event-type callbacks.
        clock: Monotonic time source used for the premature-close heuristic.
        started_at: Clock reading when the request was sent.  Defaults to
            the moment the session is created.

    Exceptions raised by *chunks* or by a handler propagate unchanged, as
    does task cancellation; no outcome is produced in that case.
    """
    session = StreamSession(handlers, clock=clock, started_at=started_at)
    try:
        async for chunk in chunks:
            await session.feed(chunk)
    except asyncio.CancelledError:
        session.abort()
        logger.info("Stream consumption cancelled after %d events", session.event_count)
        raise
    except Exception:
        session.abort()
        logger.warning(
            "Stream read failed after %d events", session.event_count, exc_info=True,
        )
        raise
    return session.finish()
