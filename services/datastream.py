"""Stream encoder: the producer side of the generation stream format.

Emits exactly what the generation service writes::

    data: {"type":"progress","message":"Grading exam..."}\\n\\n

Every method returns one ready-to-yield frame string.  Keys are camelCase,
``None`` fields are dropped, and non-ASCII text is kept as-is.
"""

from __future__ import annotations

import json
from typing import Any

from models.stream_events import (
    CompleteEvent,
    ContentEvent,
    ErrorEvent,
    ProgressEvent,
    SectionEvent,
    StreamEvent,
)
from services.frame_decoder import DATA_PREFIX, FRAME_SEPARATOR


class StreamEventEncoder:
    """Encode stream events into ``data: {json}\\n\\n`` frames."""

    @staticmethod
    def _sse(payload: dict[str, Any]) -> str:
        body = json.dumps(payload, ensure_ascii=False, default=str, separators=(",", ":"))
        return f"{DATA_PREFIX}{body}{FRAME_SEPARATOR}"

    def event(self, event: StreamEvent) -> str:
        return self._sse(event.model_dump(by_alias=True, exclude_none=True))

    def progress(self, message: str) -> str:
        return self.event(ProgressEvent(message=message))

    def content(self, chunk: str) -> str:
        return self.event(ContentEvent(chunk=chunk))

    def section(self, section: dict[str, Any]) -> str:
        return self.event(SectionEvent(section=section))

    def complete(self, **fields: Any) -> str:
        """Encode a ``complete`` frame.

        Known fields may be passed in snake_case (``total_marks=...``);
        endpoint-specific extras are passed through under their own name
        (``studyGuideUrl=...``).
        """
        return self.event(CompleteEvent(**fields))

    def error(self, message: str, **extra: Any) -> str:
        return self.event(ErrorEvent(message=message, **extra))
