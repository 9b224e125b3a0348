"""Content integrity checks.

These checks look at the documents as text. They never run the example
queries: find_documented_output() only reads what the chapter claims a
query returns.

Checks:
- every chapter parses to exactly one title and ordinal
- every code fence that is opened is closed
- a quiz region has matching markers and is followed by an answers link
- answers / code-so-far links have their sibling document
- chapter ordinals across a store have no gaps
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import structlog

from tutorial.core.chapter_parser import (
    ChapterFormatError,
    DuplicateTitleError,
    MalformedHeaderError,
    MissingTitleError,
    UnterminatedCodeBlockError,
    parse_chapter,
)
from tutorial.core.content_store import ContentStore, read_chapter_files
from tutorial.core.models import Chapter, CodeLanguage, LinkRole
from tutorial.core.quiz_extractor import MalformedQuizError, extract_quiz

logger = structlog.get_logger(__name__)

REPL_PROMPT = "db>"
REPL_CONTINUATION = "..."
REPL_CONTINUATION_PATTERN = re.compile(r"^\.+\s?")

ERROR_CODES = {
    UnterminatedCodeBlockError: "unterminated_fence",
    MissingTitleError: "missing_title",
    DuplicateTitleError: "duplicate_title",
    MalformedHeaderError: "malformed_header",
}


@dataclass(frozen=True)
class Issue:
    """A single integrity problem."""

    code: str
    message: str
    line: int = 0


@dataclass
class IntegrityReport:
    """Integrity issues found for one chapter."""

    chapter_id: str
    issues: list[Issue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def add(self, code: str, message: str, line: int = 0) -> None:
        self.issues.append(Issue(code=code, message=message, line=line))


def check_text(
    text: str,
    chapter_id: str,
    answers: str | None = None,
    code_so_far: str | None = None,
    check_siblings: bool = False,
) -> IntegrityReport:
    """Check a raw chapter document.

    Parse errors become issues instead of exceptions so that a report can
    be produced for broken documents too.

    Args:
        text: Markdown source of the chapter
        chapter_id: Chapter identifier
        answers: Text of the sibling answers document, if known
        code_so_far: Text of the sibling "code so far" document, if known
        check_siblings: Report answers/code links without a sibling document.
            Off by default since a lone document says nothing about its
            directory.
    """
    try:
        chapter = parse_chapter(text, chapter_id, answers=answers, code_so_far=code_so_far)
    except ChapterFormatError as e:
        report = IntegrityReport(chapter_id=chapter_id)
        report.add(ERROR_CODES.get(type(e), "format_error"), str(e), e.line)
        return report
    return check_chapter(chapter, check_siblings=check_siblings)


def check_directory(chapter_dir: Path) -> IntegrityReport:
    """Check a chapter directory (index.md plus its sibling documents)."""
    text, answers, code_so_far = read_chapter_files(chapter_dir)
    return check_text(
        text,
        chapter_dir.name,
        answers=answers,
        code_so_far=code_so_far,
        check_siblings=True,
    )


def check_chapter(chapter: Chapter, check_siblings: bool = True) -> IntegrityReport:
    """Check a parsed chapter.

    Args:
        chapter: Parsed chapter
        check_siblings: Report answers/code links without a sibling document

    Returns:
        IntegrityReport (ok when no issues were found)
    """
    report = IntegrityReport(chapter_id=chapter.chapter_id)

    if not chapter.title.strip():
        report.add("missing_title", "chapter title is empty")
    if chapter.ordinal < 0:
        report.add("missing_title", f"invalid chapter number {chapter.ordinal}")

    try:
        extract_quiz(chapter)
    except MalformedQuizError as e:
        report.add("quiz_malformed", e.reason, e.line)

    if check_siblings:
        for link in chapter.links_with_role(LinkRole.ANSWERS):
            if chapter.answers is None and _is_own_document(link.target):
                report.add("missing_answers_doc", f"link to {link.target} but no answers document", link.line)
        for link in chapter.links_with_role(LinkRole.CODE_SO_FAR):
            if chapter.code_so_far is None and _is_own_document(link.target):
                report.add("missing_code_doc", f"link to {link.target} but no code document", link.line)

    logger.debug(
        "integrity.chapter_checked",
        chapter_id=chapter.chapter_id,
        issues=len(report.issues),
    )
    return report


def check_store(store: ContentStore) -> dict[str, IntegrityReport]:
    """Check every chapter of a store plus ordinal continuity.

    Returns:
        Mapping chapter_id -> IntegrityReport, in narrative order
    """
    chapters = store.list_chapters()
    reports = {chapter.chapter_id: check_chapter(chapter) for chapter in chapters}

    for previous, current in zip(chapters, chapters[1:]):
        if current.ordinal != previous.ordinal + 1:
            reports[current.chapter_id].add(
                "ordinal_gap",
                f"chapter {current.ordinal} follows chapter {previous.ordinal}",
            )

    logger.info(
        "integrity.store_checked",
        chapters=len(chapters),
        failing=sum(1 for r in reports.values() if not r.ok),
    )
    return reports


def check_book(store: ContentStore) -> dict[str, IntegrityReport]:
    """Check a book directory even when some chapters do not parse.

    Uses check_store() when the whole book loads. Otherwise every chapter
    directory is checked on its own, so broken documents are reported next
    to the healthy ones (ordinal gaps are not checked in that case).

    Raises:
        ContentStoreError: If the book directory does not exist
    """
    try:
        return check_store(store)
    except ChapterFormatError as e:
        logger.warning("integrity.book_unparsed", chapter_id=e.chapter_id, line=e.line)

    reports = {d.name: check_directory(d) for d in store.chapter_dirs()}
    logger.info(
        "integrity.book_checked",
        chapters=len(reports),
        failing=sum(1 for r in reports.values() if not r.ok),
    )
    return reports


def find_documented_output(chapter: Chapter, query: str) -> str | None:
    """Find the output a chapter documents for a REPL query.

    Looks through edgeql-repl blocks for a ``db>`` prompt whose query text
    (including ``...`` continuation lines) matches ``query`` once
    whitespace is normalised, and returns the lines shown after it up to
    the next prompt.

    Args:
        chapter: Parsed chapter
        query: Query text as written in the prose

    Returns:
        Documented output, or None if the query is not shown in a REPL block
    """
    wanted = _normalise(query)

    for block in chapter.code_blocks:
        if block.kind != CodeLanguage.EDGEQL_REPL:
            continue
        for statement, output in _repl_exchanges(block.text):
            if _normalise(statement) == wanted:
                return output
    return None


def _repl_exchanges(text: str) -> list[tuple[str, str]]:
    """Split a REPL transcript into (query, output) pairs."""
    exchanges: list[tuple[str, str]] = []
    statement: list[str] | None = None
    output: list[str] = []

    def finish() -> None:
        if statement is not None:
            exchanges.append((" ".join(statement), "\n".join(output).strip()))

    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(REPL_PROMPT):
            finish()
            statement = [stripped[len(REPL_PROMPT) :].strip()]
            output = []
        elif stripped.startswith(REPL_CONTINUATION) and statement is not None and not output:
            statement.append(REPL_CONTINUATION_PATTERN.sub("", stripped).strip())
        elif statement is not None:
            output.append(line.rstrip())

    finish()
    return exchanges


def _normalise(query: str) -> str:
    return re.sub(r"\s+", " ", query).strip()


def _is_own_document(target: str) -> bool:
    if target.startswith(("http://", "https://")):
        return False
    path = target.split("#", 1)[0]
    return PurePosixPath(path).parent == PurePosixPath(".")
