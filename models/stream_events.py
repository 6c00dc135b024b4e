"""Typed payloads for the generation stream.

Every frame the generation service writes is ``data: {json}\\n\\n`` where the
JSON object carries a ``type`` tag:

- ``progress``: human-readable status line.
- ``content``:  incremental text chunk, appended by the caller.
- ``section``:  structured sub-document to insert immediately.
- ``complete``: final result data and/or the persisted record id.
- ``error``:    server-signalled failure message.

:data:`StreamEvent` is the discriminated union of the five variants and
:func:`parse_event` validates a decoded JSON document against it.  Only the
``type`` tag decides whether a document is recognised: payload fields are
typed loosely so a known event is never dropped for an odd field value.
"""

from __future__ import annotations

from typing import Annotated, Any, Callable, Literal, Union

from pydantic import BeforeValidator, ConfigDict, Field, TypeAdapter

from models.base import CamelModel


def _text(default: str) -> Callable[[Any], str]:
    """Coerce a wire value to text; ``null`` becomes *default*."""

    def coerce(value: Any) -> str:
        if value is None:
            return default
        return value if isinstance(value, str) else str(value)

    return coerce


class ProgressEvent(CamelModel):
    """Status update shown to the user while the service works."""

    type: Literal["progress"] = "progress"
    message: Annotated[str, BeforeValidator(_text(""))] = ""


class ContentEvent(CamelModel):
    """Incremental chunk of generated text."""

    type: Literal["content"] = "content"
    chunk: Annotated[str, BeforeValidator(_text(""))] = ""


class SectionEvent(CamelModel):
    """A finished study-guide section, pushed before the stream completes."""

    type: Literal["section"] = "section"
    section: Any = None


class CompleteEvent(CamelModel):
    """Terminal success payload.

    Fields differ per endpoint (grading returns marks and a breakdown, the
    custom guide returns ``customContent``, the study guide returns a URL),
    so the known fields are optional, untyped, and anything else is kept as
    extra.
    """

    model_config = ConfigDict(extra="allow")

    type: Literal["complete"] = "complete"
    id: Any = None
    total_marks: Any = None
    total_possible_marks: Any = None
    grade_breakdown: Any = None
    custom_content: Any = None


class ErrorEvent(CamelModel):
    """Server-signalled failure.  May carry extras such as ``rawContent``."""

    model_config = ConfigDict(extra="allow")

    type: Literal["error"] = "error"
    message: Annotated[str, BeforeValidator(_text("Unknown error"))] = "Unknown error"


StreamEvent = Annotated[
    Union[ProgressEvent, ContentEvent, SectionEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def parse_event(document: Any) -> StreamEvent:
    """Validate a decoded JSON document as a :data:`StreamEvent`.

    Raises ``pydantic.ValidationError`` for non-objects and for objects
    whose ``type`` tag is missing or unknown.
    """
    return _EVENT_ADAPTER.validate_python(document)
