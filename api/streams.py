"""Stream relay API: forward upstream generation streams to the browser.

Each endpoint opens the matching generation stream, re-encodes every
upstream event in arrival order, and guarantees the client sees a terminal
frame: when the upstream ends without ``complete`` (and without an
``error`` frame of its own) a final ``error`` frame carrying the diagnosed
message is appended.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncGenerator, Awaitable, Callable

from fastapi import APIRouter
from starlette.responses import StreamingResponse

from errors.exceptions import GenerationServiceError, StreamTransportError
from models.request import CustomGuideStreamRequest, StudyGuideStreamRequest
from models.stream_events import CompleteEvent
from models.stream_outcome import FailureKind, StreamOutcome
from services.datastream import StreamEventEncoder
from services.generation_client import get_generation_client
from services.stream_consumer import EventHandlers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/streams", tags=["streams"])

_STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",
}

StreamCall = Callable[[EventHandlers], Awaitable[StreamOutcome]]


@router.post("/study-guide")
async def study_guide_stream(req: StudyGuideStreamRequest):
    """Relay the study-guide generation stream."""
    payload = req.model_dump(by_alias=True, exclude_none=True)
    client = get_generation_client()

    async def call(handlers: EventHandlers) -> StreamOutcome:
        return await client.stream_study_guide(payload, handlers)

    return StreamingResponse(
        _relay_generator(call, "study-guide"),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


@router.post("/custom-guide")
async def custom_guide_stream(req: CustomGuideStreamRequest):
    """Relay the custom-guide stream; sections are forwarded as they arrive."""
    payload = req.model_dump(by_alias=True, exclude_none=True)
    client = get_generation_client()

    async def call(handlers: EventHandlers) -> StreamOutcome:
        return await client.stream_custom_guide(payload, handlers)

    return StreamingResponse(
        _relay_generator(call, "custom-guide"),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


def _relay_handlers(enc: StreamEventEncoder, queue: asyncio.Queue) -> EventHandlers:
    def on_complete(event: CompleteEvent) -> None:
        queue.put_nowait(enc.event(event))

    return EventHandlers(
        on_progress=lambda message: queue.put_nowait(enc.progress(message)),
        on_content=lambda chunk: queue.put_nowait(enc.content(chunk)),
        on_section=lambda section: queue.put_nowait(enc.section(section)),
        on_complete=on_complete,
        on_error=lambda message: queue.put_nowait(enc.error(message)),
    )


async def _run_upstream(
    call: StreamCall,
    name: str,
    enc: StreamEventEncoder,
    queue: asyncio.Queue,
) -> None:
    """Consume the upstream stream into *queue*, then push the end marker."""
    try:
        outcome = await call(_relay_handlers(enc, queue))
        reason = outcome.failure_reason
        # Upstream error frames were already relayed by on_error.
        if reason is not None and reason.kind != FailureKind.SERVER_ERROR:
            queue.put_nowait(enc.error(reason.message, reason=reason.kind.value))
    except GenerationServiceError as exc:
        logger.warning("Upstream %s rejected request: %s", name, exc)
        queue.put_nowait(enc.error(exc.detail))
    except StreamTransportError as exc:
        logger.warning("Upstream %s connection failed: %s", name, exc)
        queue.put_nowait(enc.error("Lost connection to the generation service. Please try again."))
    except Exception:
        logger.exception("Upstream %s stream failed", name)
        queue.put_nowait(enc.error("Stream generation failed unexpectedly. Please try again."))
    finally:
        queue.put_nowait(None)


async def _relay_generator(call: StreamCall, name: str) -> AsyncGenerator[str, None]:
    enc = StreamEventEncoder()
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    task = asyncio.create_task(_run_upstream(call, name, enc, queue))
    try:
        while True:
            frame = await queue.get()
            if frame is None:
                break
            yield frame
    finally:
        # Client disconnected mid-stream: stop reading upstream.
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
