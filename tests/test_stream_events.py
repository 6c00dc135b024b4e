"""Tests for stream event models: parsing and camelCase serialization."""

import pytest
from pydantic import ValidationError

from models.stream_events import (
    CompleteEvent,
    ContentEvent,
    ErrorEvent,
    ProgressEvent,
    SectionEvent,
    parse_event,
)


def test_progress_parses():
    event = parse_event({"type": "progress", "message": "Grading exam..."})
    assert isinstance(event, ProgressEvent)
    assert event.message == "Grading exam..."


def test_content_parses():
    event = parse_event({"type": "content", "chunk": "Question 1, Mark: 2/3"})
    assert isinstance(event, ContentEvent)
    assert event.chunk == "Question 1, Mark: 2/3"


def test_section_keeps_document():
    section = {"id": "s1", "type": "flashcards", "title": "Cells", "cards": []}
    event = parse_event({"type": "section", "section": section})
    assert isinstance(event, SectionEvent)
    assert event.section == section


def test_section_without_document_still_recognised():
    event = parse_event({"type": "section"})
    assert isinstance(event, SectionEvent)
    assert event.section is None


def test_progress_message_coerced_to_text():
    assert parse_event({"type": "progress", "message": 42}).message == "42"
    assert parse_event({"type": "progress", "message": None}).message == ""


def test_content_null_chunk_is_empty():
    assert parse_event({"type": "content", "chunk": None}).chunk == ""


def test_complete_grading_fields_camel_case():
    """Grading completion maps camelCase wire keys onto snake_case fields."""
    event = parse_event({
        "type": "complete",
        "id": "g-42",
        "totalMarks": 17,
        "totalPossibleMarks": 20,
        "gradeBreakdown": [{"questionNumber": "1a", "marksAwarded": 2, "marksPossible": 2}],
        "percentage": "85.0",
        "grade": "B",
    })
    assert isinstance(event, CompleteEvent)
    assert event.id == "g-42"
    assert event.total_marks == 17
    assert event.total_possible_marks == 20
    assert event.grade_breakdown[0]["questionNumber"] == "1a"
    assert event.model_extra == {"percentage": "85.0", "grade": "B"}


def test_complete_without_fields():
    event = parse_event({"type": "complete"})
    assert isinstance(event, CompleteEvent)
    assert event.id is None
    assert event.custom_content is None


def test_complete_keeps_unexpected_field_values():
    event = parse_event({
        "type": "complete",
        "id": "abc",
        "totalMarks": "n/a",
        "gradeBreakdown": "pending",
        "customContent": [],
    })
    assert isinstance(event, CompleteEvent)
    assert event.total_marks == "n/a"
    assert event.grade_breakdown == "pending"
    assert event.custom_content == []


def test_complete_dump_round_trips_extras():
    event = CompleteEvent(id="abc", studyGuideUrl="/study-guide/abc")
    data = event.model_dump(by_alias=True, exclude_none=True)
    assert data == {"type": "complete", "id": "abc", "studyGuideUrl": "/study-guide/abc"}


def test_error_default_message():
    event = parse_event({"type": "error"})
    assert isinstance(event, ErrorEvent)
    assert event.message == "Unknown error"


@pytest.mark.parametrize("message, expected", [(None, "Unknown error"), (500, "500")])
def test_error_message_fallback(message, expected):
    event = parse_event({"type": "error", "message": message})
    assert isinstance(event, ErrorEvent)
    assert event.message == expected


def test_error_keeps_raw_content():
    event = parse_event({"type": "error", "message": "validation failed", "rawContent": "{"})
    assert event.model_extra == {"rawContent": "{"}


@pytest.mark.parametrize(
    "document",
    [
        {"type": "finish"},
        {"message": "no type"},
        {"type": 5, "message": "numeric tag"},
        ["progress"],
        "progress",
        None,
    ],
)
def test_unknown_documents_rejected(document):
    with pytest.raises(ValidationError):
        parse_event(document)
