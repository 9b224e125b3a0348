"""Chapter data model.

Entities are immutable once parsed: chapters are authored once and only
read at delivery time.

- Chapter: one narrative unit with title, ordinal, tags and ordered body
- ProseBlock / CodeBlock: the two kinds of body block
- Link: a classified markdown link (answers, code so far, navigation)
- Quiz / QuizQuestion: the practice region at the end of a chapter
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BlockKind(str, Enum):
    """Kind of body block."""

    PROSE = "prose"
    CODE = "code"


class CodeLanguage(str, Enum):
    """Fence tags used by the book. Anything else renders as plain."""

    SDL = "sdl"
    EDGEQL = "edgeql"
    EDGEQL_REPL = "edgeql-repl"
    PLAIN = "plain"

    @classmethod
    def from_tag(cls, tag: str) -> CodeLanguage:
        try:
            return cls(tag.strip().lower())
        except ValueError:
            return cls.PLAIN


class LinkRole(str, Enum):
    """What a link in a chapter points at."""

    ANSWERS = "answers"
    CODE_SO_FAR = "code_so_far"
    NEXT_CHAPTER = "next_chapter"
    PREVIOUS_CHAPTER = "previous_chapter"
    OTHER = "other"


@dataclass(frozen=True)
class ProseBlock:
    """A run of markdown prose between code fences."""

    text: str
    line: int

    @property
    def block_kind(self) -> BlockKind:
        return BlockKind.PROSE


@dataclass(frozen=True)
class CodeBlock:
    """A fenced code block.

    The text is kept literally. The language tag only selects how the block
    is displayed; nothing here checks that the code is valid.
    """

    language: str
    text: str
    line: int

    @property
    def block_kind(self) -> BlockKind:
        return BlockKind.CODE

    @property
    def kind(self) -> CodeLanguage:
        return CodeLanguage.from_tag(self.language) if self.language else CodeLanguage.PLAIN


Block = ProseBlock | CodeBlock


@dataclass(frozen=True)
class Link:
    """A markdown link found in chapter prose."""

    text: str
    target: str
    role: LinkRole
    line: int = 0


@dataclass(frozen=True)
class QuizMarker:
    """Position of a quiz start or end marker."""

    kind: str  # "start" | "end"
    line: int


@dataclass(frozen=True)
class Chapter:
    """A parsed tutorial chapter."""

    chapter_id: str
    ordinal: int
    title: str
    tags: tuple[str, ...] = ()
    blocks: tuple[Block, ...] = ()
    links: tuple[Link, ...] = ()
    up_next: str | None = None
    quiz_markers: tuple[QuizMarker, ...] = ()
    source: str = ""
    answers: str | None = None
    code_so_far: str | None = None

    @property
    def code_blocks(self) -> list[CodeBlock]:
        return [b for b in self.blocks if isinstance(b, CodeBlock)]

    @property
    def prose_blocks(self) -> list[ProseBlock]:
        return [b for b in self.blocks if isinstance(b, ProseBlock)]

    @property
    def has_quiz(self) -> bool:
        return any(m.kind == "start" for m in self.quiz_markers)

    def links_with_role(self, role: LinkRole) -> list[Link]:
        return [link for link in self.links if link.role == role]


@dataclass(frozen=True)
class QuizQuestion:
    """A single numbered practice question."""

    number: int
    text: str
    code: tuple[CodeBlock, ...] = ()


@dataclass(frozen=True)
class Quiz:
    """The quiz region of a chapter."""

    chapter_id: str
    questions: tuple[QuizQuestion, ...]
    answers_link: Link
    start_line: int = 0
    end_line: int = 0


@dataclass
class RenderedPage:
    """Result of rendering a chapter to HTML."""

    chapter_id: str
    title: str
    html: str
    links: list[str] = field(default_factory=list)
    code_block_count: int = 0
