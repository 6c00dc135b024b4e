"""Frame splitting for the ``data: {json}\\n\\n`` stream format.

:class:`FrameDecoder` turns arbitrary network chunks into complete frames.
Bytes are decoded with an incremental UTF-8 decoder so a multi-byte
character split across two chunks is reassembled rather than replaced.
After every :meth:`FrameDecoder.feed` the buffer holds at most one
unterminated trailing frame.
"""

from __future__ import annotations

import codecs
import json
import logging

from pydantic import ValidationError

from models.stream_events import StreamEvent, parse_event

logger = logging.getLogger(__name__)

FRAME_SEPARATOR = "\n\n"
DATA_PREFIX = "data: "


class FrameDecoder:
    """Accumulate decoded text and split it into complete frames."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Append *chunk* and return every frame it completed, in order."""
        self.buffer += self._decoder.decode(chunk)
        *frames, self.buffer = self.buffer.split(FRAME_SEPARATOR)
        return frames

    def flush(self) -> str:
        """Finish decoding at end of stream and return the leftover fragment."""
        self.buffer += self._decoder.decode(b"", final=True)
        return self.buffer


def decode_frame(frame: str) -> StreamEvent | None:
    """Decode one frame into an event, or ``None`` if it should be skipped.

    Frames without the ``data: `` prefix, with a body that is not JSON, or
    with JSON whose ``type`` tag is missing or unknown are all skipped
    silently.  A known tag is never skipped for its payload fields.
    """
    if not frame.startswith(DATA_PREFIX):
        if frame:
            logger.debug("Skipping frame without data prefix: %.80r", frame)
        return None

    body = frame[len(DATA_PREFIX):]
    try:
        document = json.loads(body)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed frame: %.80r", body)
        return None

    try:
        return parse_event(document)
    except ValidationError as exc:
        logger.debug("Skipping unrecognised event (%d errors): %.80r", exc.error_count(), body)
        return None
