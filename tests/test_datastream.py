"""Tests for StreamEventEncoder.

Validates that encoded frames match the generation service's wire format
and are accepted by the consumer.
"""

from __future__ import annotations

import json

import pytest

from models.stream_events import ProgressEvent
from services.datastream import StreamEventEncoder
from services.stream_consumer import consume_stream


# ── Helpers ──────────────────────────────────────────────────────


def _payload(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):-2])


# ── Encoder unit tests ───────────────────────────────────────────


class TestEvents:
    def test_progress(self):
        enc = StreamEventEncoder()
        assert _payload(enc.progress("Saving results...")) == {
            "type": "progress",
            "message": "Saving results...",
        }

    def test_content(self):
        enc = StreamEventEncoder()
        assert _payload(enc.content("Question 1")) == {"type": "content", "chunk": "Question 1"}

    def test_section(self):
        enc = StreamEventEncoder()
        section = {"id": "s-2", "type": "quiz", "questions": [{"q": "2+2?"}]}
        assert _payload(enc.section(section)) == {"type": "section", "section": section}

    def test_complete_grading(self):
        enc = StreamEventEncoder()
        payload = _payload(enc.complete(
            id="g-7",
            total_marks=8,
            total_possible_marks=10,
            gradeReportUrl="/grade-report/g-7",
        ))
        assert payload == {
            "type": "complete",
            "id": "g-7",
            "totalMarks": 8,
            "totalPossibleMarks": 10,
            "gradeReportUrl": "/grade-report/g-7",
        }

    def test_complete_drops_none(self):
        enc = StreamEventEncoder()
        assert _payload(enc.complete()) == {"type": "complete"}

    def test_error_with_extra(self):
        enc = StreamEventEncoder()
        payload = _payload(enc.error("final validation failed", rawContent="{..."))
        assert payload == {
            "type": "error",
            "message": "final validation failed",
            "rawContent": "{...",
        }

    def test_event_model(self):
        enc = StreamEventEncoder()
        assert enc.event(ProgressEvent(message="x")) == enc.progress("x")


class TestWireFormat:
    def test_exact_bytes(self):
        enc = StreamEventEncoder()
        assert enc.progress("Starting") == 'data: {"type":"progress","message":"Starting"}\n\n'

    def test_unicode_not_escaped(self):
        enc = StreamEventEncoder()
        assert "正在批改" in enc.progress("正在批改...")

    def test_newlines_in_text_stay_inside_one_frame(self):
        enc = StreamEventEncoder()
        frame = enc.content("line one\n\nline two")
        assert frame.count("\n\n") == 1
        assert frame.endswith("\n\n")


@pytest.mark.asyncio
async def test_encoded_stream_consumed(recorder, byte_stream):
    enc = StreamEventEncoder()
    body = (
        enc.progress("Creating your study guide...")
        + enc.content("# Photosynthesis\n\n")
        + enc.complete(id="sg-1", studyGuideUrl="/study-guide/sg-1")
    )

    outcome = await consume_stream(byte_stream(body), recorder.handlers)

    assert recorder.kinds == ["progress", "content", "complete"]
    assert recorder.calls[1] == ("content", "# Photosynthesis\n\n")
    assert outcome.ok
    assert outcome.result.model_extra == {"studyGuideUrl": "/study-guide/sg-1"}
