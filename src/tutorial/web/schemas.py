"""Pydantic schemas for the Web API.

Serialization models for chapters, blocks, links and quizzes.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


# =============================================================================
# CHAPTER SCHEMAS
# =============================================================================


class ChapterSummary(BaseModel):
    """Chapter entry in the chapter list."""

    id: str
    ordinal: int
    title: str
    tags: list[str] = Field(default_factory=list)
    has_quiz: bool = False


class ChapterListResponse(BaseModel):
    """Response for list of chapters."""

    chapters: list[ChapterSummary]
    count: int


class BlockResponse(BaseModel):
    """A prose or code block."""

    kind: str  # prose | code
    line: int
    text: str
    language: str | None = None


class LinkResponse(BaseModel):
    """A classified link."""

    text: str
    target: str
    role: str


class ChapterDetail(BaseModel):
    """Full chapter with its blocks and navigation."""

    id: str
    ordinal: int
    title: str
    tags: list[str] = Field(default_factory=list)
    blocks: list[BlockResponse] = Field(default_factory=list)
    links: list[LinkResponse] = Field(default_factory=list)
    up_next: str | None = None
    previous_id: str | None = None
    next_id: str | None = None
    has_quiz: bool = False
    has_answers: bool = False
    has_code_so_far: bool = False


# =============================================================================
# QUIZ SCHEMAS
# =============================================================================


class QuizQuestionResponse(BaseModel):
    """A single practice question."""

    number: int
    text: str
    code: list[str] = Field(default_factory=list)


class QuizResponse(BaseModel):
    """Quiz region of a chapter."""

    chapter_id: str
    questions: list[QuizQuestionResponse]
    answers_url: str


# =============================================================================
# TAG SCHEMAS
# =============================================================================


class TagIndexResponse(BaseModel):
    """Tag -> chapter ids."""

    tags: dict[str, list[str]]
    count: int


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
