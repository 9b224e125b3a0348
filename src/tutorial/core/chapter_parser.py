"""Chapter document parser.

Responsibilities:
- Read the metadata header (YAML between ``---`` lines) for the tag list
- Find the single ``# Chapter N - Title`` heading
- Split the body into prose and fenced code blocks, in document order
- Collect and classify links (answers, code so far, chapter navigation)
- Record quiz region markers and the "Up next" narrative pointer

Code blocks are kept as literal text. Nothing here interprets the queries
or schema they contain.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

import structlog
import yaml

from tutorial.core.models import (
    Block,
    Chapter,
    CodeBlock,
    Link,
    LinkRole,
    ProseBlock,
    QuizMarker,
)

logger = structlog.get_logger(__name__)

HEADER_DELIMITER = "---"
QUIZ_START_MARKER = "<!-- quiz-start -->"
QUIZ_END_MARKER = "<!-- quiz-end -->"

TITLE_PATTERN = re.compile(r"^#\s+(.+?)\s*#*\s*$")
CHAPTER_TITLE_PATTERN = re.compile(
    r"^Chapter\s+(\d+)\s*[-–—:.]\s*(.+)$", re.IGNORECASE
)
FENCE_OPEN_PATTERN = re.compile(r"^\s{0,3}(`{3,})\s*([^`\s]*)[^`]*$")
FENCE_CLOSE_PATTERN = re.compile(r"^\s{0,3}(`{3,})\s*$")
LINK_PATTERN = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
UP_NEXT_PATTERN = re.compile(r"^(?:__Up next:__|\*\*Up next:\*\*)\s*(.*)$", re.IGNORECASE)
CHAPTER_TARGET_PATTERN = re.compile(r"chapter(\d+)", re.IGNORECASE)


class ChapterFormatError(Exception):
    """Base exception for malformed chapter documents."""

    def __init__(self, message: str, chapter_id: str = "", line: int = 0):
        self.chapter_id = chapter_id
        self.line = line
        location = f"{chapter_id}:{line}" if line else chapter_id
        super().__init__(f"{location}: {message}" if location else message)


class MalformedHeaderError(ChapterFormatError):
    """Raised when the metadata header is unterminated or not a mapping."""


class MissingTitleError(ChapterFormatError):
    """Raised when a chapter has no title heading or no ordinal."""


class DuplicateTitleError(ChapterFormatError):
    """Raised when a chapter has more than one level-one heading."""


class UnterminatedCodeBlockError(ChapterFormatError):
    """Raised when a code fence is opened and never closed."""


def parse_chapter(
    text: str,
    chapter_id: str,
    answers: str | None = None,
    code_so_far: str | None = None,
) -> Chapter:
    """Parse a chapter document into a Chapter.

    Args:
        text: Markdown source of the chapter
        chapter_id: Identifier of the chapter (directory name, e.g. "chapter14")
        answers: Raw text of the sibling answers document, if any
        code_so_far: Raw text of the sibling "code so far" document, if any

    Returns:
        Parsed Chapter

    Raises:
        MalformedHeaderError: If the metadata header is broken
        MissingTitleError: If there is no title or no ordinal can be derived
        DuplicateTitleError: If there are two level-one headings
        UnterminatedCodeBlockError: If a code fence is never closed
    """
    lines = text.splitlines()
    metadata, body_start = _parse_header(lines, chapter_id)
    tags = _parse_tags(metadata.get("tags"))

    heading: str | None = None
    heading_line = 0
    blocks: list[Block] = []
    links: list[Link] = []
    quiz_markers: list[QuizMarker] = []
    up_next: str | None = None

    prose: list[str] = []
    prose_start = body_start + 1
    fence: str | None = None
    fence_lang = ""
    fence_line = 0
    fence_indent = 0
    code: list[str] = []

    def flush_prose() -> None:
        chunk = "\n".join(prose).strip("\n")
        if chunk.strip():
            offset = next(i for i, ln in enumerate(prose) if ln.strip())
            blocks.append(ProseBlock(text=chunk, line=prose_start + offset))
        prose.clear()

    for index in range(body_start, len(lines)):
        line = lines[index]
        lineno = index + 1

        if fence is not None:
            close = FENCE_CLOSE_PATTERN.match(line)
            if close and len(close.group(1)) >= len(fence):
                blocks.append(CodeBlock(language=fence_lang, text="\n".join(code), line=fence_line))
                fence = None
                code = []
                prose_start = lineno + 1
            else:
                code.append(_strip_indent(line, fence_indent))
            continue

        opening = FENCE_OPEN_PATTERN.match(line)
        if opening:
            flush_prose()
            fence = opening.group(1)
            fence_lang = opening.group(2)
            fence_line = lineno
            fence_indent = len(line) - len(line.lstrip(" "))
            continue

        title_match = TITLE_PATTERN.match(line)
        if title_match:
            if heading is not None:
                raise DuplicateTitleError(
                    f"second title heading (first at line {heading_line})",
                    chapter_id=chapter_id,
                    line=lineno,
                )
            flush_prose()
            heading = title_match.group(1)
            heading_line = lineno
            prose_start = lineno + 1
            continue

        stripped = line.strip()
        if stripped == QUIZ_START_MARKER:
            quiz_markers.append(QuizMarker(kind="start", line=lineno))
        elif stripped == QUIZ_END_MARKER:
            quiz_markers.append(QuizMarker(kind="end", line=lineno))

        up_next_match = UP_NEXT_PATTERN.match(stripped)
        if up_next_match and up_next is None:
            up_next = _collect_paragraph(up_next_match.group(1), lines[index + 1 :])

        for link_match in LINK_PATTERN.finditer(line):
            links.append(
                Link(
                    text=link_match.group(1),
                    target=link_match.group(2),
                    role=LinkRole.OTHER,
                    line=lineno,
                )
            )

        if not prose:
            prose_start = lineno
        prose.append(line)

    if fence is not None:
        raise UnterminatedCodeBlockError(
            f"code fence {fence}{fence_lang} is never closed",
            chapter_id=chapter_id,
            line=fence_line,
        )
    flush_prose()

    if heading is None:
        raise MissingTitleError("no title heading found", chapter_id=chapter_id)

    ordinal, title = _split_heading(heading, chapter_id, heading_line)
    classified = tuple(
        Link(text=ln.text, target=ln.target, role=classify_link(ln, ordinal), line=ln.line)
        for ln in links
    )

    logger.debug(
        "chapter_parser.parsed",
        chapter_id=chapter_id,
        ordinal=ordinal,
        blocks=len(blocks),
        links=len(classified),
        tags=len(tags),
    )

    return Chapter(
        chapter_id=chapter_id,
        ordinal=ordinal,
        title=title,
        tags=tuple(tags),
        blocks=tuple(blocks),
        links=classified,
        up_next=up_next,
        quiz_markers=tuple(quiz_markers),
        source=text,
        answers=answers,
        code_so_far=code_so_far,
    )


def classify_link(link: Link, ordinal: int) -> LinkRole:
    """Work out what a link points at.

    Args:
        link: Link as found in the document
        ordinal: Ordinal of the chapter containing the link

    Returns:
        LinkRole for the link
    """
    target = link.target.split("#", 1)[0]
    name = PurePosixPath(target).name.lower() if target else ""

    if name == "answers.md":
        return LinkRole.ANSWERS
    if name == "code.md":
        return LinkRole.CODE_SO_FAR

    chapter_match = CHAPTER_TARGET_PATTERN.search(target)
    if chapter_match:
        other = int(chapter_match.group(1))
        if other > ordinal:
            return LinkRole.NEXT_CHAPTER
        if other < ordinal:
            return LinkRole.PREVIOUS_CHAPTER

    if "answer" in link.text.lower() and not target.startswith(("http://", "https://")):
        return LinkRole.ANSWERS

    return LinkRole.OTHER


def _parse_header(lines: list[str], chapter_id: str) -> tuple[dict, int]:
    """Parse the optional YAML metadata header.

    Returns:
        Tuple of (metadata mapping, index of first body line)
    """
    if not lines or lines[0].strip() != HEADER_DELIMITER:
        return {}, 0

    for index in range(1, len(lines)):
        if lines[index].strip() == HEADER_DELIMITER:
            raw = "\n".join(lines[1:index])
            try:
                data = yaml.safe_load(raw) if raw.strip() else {}
            except yaml.YAMLError as e:
                raise MalformedHeaderError(
                    f"invalid metadata header: {e}", chapter_id=chapter_id, line=1
                ) from e
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise MalformedHeaderError(
                    "metadata header must be a mapping", chapter_id=chapter_id, line=1
                )
            return data, index + 1

    raise MalformedHeaderError(
        "metadata header is never closed", chapter_id=chapter_id, line=1
    )


def _parse_tags(value: object) -> list[str]:
    """Tags may be a comma-separated string or a YAML list."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [str(v) for v in value]
    else:
        items = [str(value)]
    return [item.strip() for item in items if item.strip()]


def _split_heading(heading: str, chapter_id: str, line: int) -> tuple[int, str]:
    """Split '# Chapter 14 - A ray of hope' into (14, 'A ray of hope')."""
    match = CHAPTER_TITLE_PATTERN.match(heading)
    if match:
        return int(match.group(1)), match.group(2).strip()

    digits = re.search(r"(\d+)", chapter_id)
    if digits is None:
        raise MissingTitleError(
            f"cannot derive chapter number from title '{heading}'",
            chapter_id=chapter_id,
            line=line,
        )
    return int(digits.group(1)), heading.strip()


def _collect_paragraph(first: str, following: list[str]) -> str:
    """Join the rest of a paragraph onto its first line."""
    parts = [first.strip()] if first.strip() else []
    for line in following:
        if not line.strip() or FENCE_OPEN_PATTERN.match(line):
            break
        parts.append(line.strip())
    return " ".join(parts)


def _strip_indent(line: str, width: int) -> str:
    """Remove up to ``width`` leading spaces (the indent of the opening fence)."""
    leading = len(line) - len(line.lstrip(" "))
    return line[min(leading, width) :]
