"""API request models for the stream relay endpoints."""

from __future__ import annotations

from typing import Literal

from models.base import CamelModel


class SourceFile(CamelModel):
    """An uploaded source document the generator should read."""

    url: str
    filename: str
    size: int | None = None
    format: str | None = None


class StudyGuideStreamRequest(CamelModel):
    """POST /api/streams/study-guide request body."""

    study_guide_name: str
    subject: str
    grade_level: str
    format: str
    cloudinary_files: list[SourceFile]
    topic_focus: str | None = None
    difficulty_level: str | None = None
    additional_instructions: str | None = None


class CustomGuideStreamRequest(CamelModel):
    """POST /api/streams/custom-guide request body."""

    description: str
    subject: str | None = None
    grade_level: str | None = None
    existing_content: str = ""
    cloudinary_files: list[SourceFile] | None = None
    mode: Literal["replace", "add"] = "replace"
