"""Read-only store of tutorial chapters.

Layout on disk (one directory per chapter):

    data/book/
        chapter14/
            index.md     the chapter itself
            answers.md   answers to the quiz (optional)
            code.md      all code so far (optional)

Chapters are loaded once, on first access, and kept in ordinal order.
"""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from tutorial.core.chapter_parser import parse_chapter
from tutorial.core.models import Chapter

logger = structlog.get_logger(__name__)

CHAPTER_DIR_PATTERN = re.compile(r"^chapter\d+$")
CHAPTER_FILE = "index.md"
ANSWERS_FILE = "answers.md"
CODE_FILE = "code.md"


class ContentStoreError(Exception):
    """Base exception for content store errors."""

    pass


class ChapterNotFoundError(ContentStoreError):
    """Raised when no chapter matches the given id or ordinal."""

    def __init__(self, chapter_id: str, available: list[str] | None = None):
        self.chapter_id = chapter_id
        self.available = available or []
        super().__init__(f"Chapter '{chapter_id}' not found")


class AmbiguousChapterIdError(ContentStoreError):
    """Raised when a chapter id prefix matches several chapters."""

    def __init__(self, prefix: str, candidates: list[str]):
        self.prefix = prefix
        self.candidates = candidates
        super().__init__(
            f"Prefix '{prefix}' is ambiguous. Candidates:\n"
            + "\n".join(f"  - {c}" for c in candidates)
        )


class DuplicateChapterError(ContentStoreError):
    """Raised when two chapters claim the same narrative position."""

    def __init__(self, ordinal: int, chapter_ids: list[str]):
        self.ordinal = ordinal
        self.chapter_ids = chapter_ids
        super().__init__(
            f"Chapter number {ordinal} is used by more than one chapter: "
            + ", ".join(chapter_ids)
        )


def resolve_chapter_id(prefix: str, candidates: list[str]) -> str:
    """Resolve a chapter id prefix to a unique full chapter id.

    Args:
        prefix: Partial or full chapter id (e.g., "chapter14" or "chapter1")
        candidates: All available chapter ids

    Returns:
        The unique matching chapter id

    Raises:
        ChapterNotFoundError: If no candidate matches
        AmbiguousChapterIdError: If several candidates match
    """
    if prefix in candidates:
        return prefix

    matches = [c for c in candidates if c.startswith(prefix)]

    if len(matches) == 0:
        raise ChapterNotFoundError(prefix, candidates)
    elif len(matches) == 1:
        return matches[0]
    else:
        raise AmbiguousChapterIdError(prefix, matches)


class ContentStore:
    """Ordered, read-only collection of chapters loaded from a book directory."""

    def __init__(self, book_dir: Path):
        self.book_dir = Path(book_dir)
        self._chapters: list[Chapter] | None = None

    def load(self) -> list[Chapter]:
        """Parse every chapter under the book directory.

        Returns:
            Chapters sorted by ordinal

        Raises:
            ContentStoreError: If the book directory does not exist
            DuplicateChapterError: If two chapters share an ordinal
            ChapterFormatError: If a chapter document is malformed
        """
        chapters: list[Chapter] = []
        for chapter_dir in self.chapter_dirs():
            text, answers, code_so_far = read_chapter_files(chapter_dir)
            chapters.append(
                parse_chapter(
                    text,
                    chapter_id=chapter_dir.name,
                    answers=answers,
                    code_so_far=code_so_far,
                )
            )

        by_ordinal: dict[int, list[str]] = {}
        for chapter in chapters:
            by_ordinal.setdefault(chapter.ordinal, []).append(chapter.chapter_id)
        for ordinal, ids in by_ordinal.items():
            if len(ids) > 1:
                raise DuplicateChapterError(ordinal, ids)

        chapters.sort(key=lambda c: c.ordinal)
        self._chapters = chapters

        logger.info(
            "content_store.loaded",
            book_dir=str(self.book_dir),
            chapters=len(chapters),
        )
        return chapters

    def chapter_dirs(self) -> list[Path]:
        """Chapter directories holding an index.md, sorted by name.

        Raises:
            ContentStoreError: If the book directory does not exist
        """
        if not self.book_dir.is_dir():
            raise ContentStoreError(f"Book directory not found: {self.book_dir}")

        dirs = []
        for chapter_dir in sorted(self.book_dir.iterdir()):
            if not chapter_dir.is_dir() or not CHAPTER_DIR_PATTERN.match(chapter_dir.name):
                continue
            if not (chapter_dir / CHAPTER_FILE).exists():
                logger.warning("content_store.missing_index", chapter_dir=str(chapter_dir))
                continue
            dirs.append(chapter_dir)
        return dirs

    @property
    def chapters(self) -> list[Chapter]:
        if self._chapters is None:
            self.load()
        return self._chapters  # type: ignore[return-value]

    def list_chapters(self) -> list[Chapter]:
        """All chapters in narrative order."""
        return list(self.chapters)

    def chapter_ids(self) -> list[str]:
        return [c.chapter_id for c in self.chapters]

    def get(self, chapter_id: str) -> Chapter:
        """Get a chapter by id or unique id prefix.

        Raises:
            ChapterNotFoundError: If no chapter matches
            AmbiguousChapterIdError: If the prefix matches several chapters
        """
        resolved = resolve_chapter_id(chapter_id, self.chapter_ids())
        for chapter in self.chapters:
            if chapter.chapter_id == resolved:
                return chapter
        raise ChapterNotFoundError(chapter_id, self.chapter_ids())

    def get_by_ordinal(self, ordinal: int) -> Chapter:
        for chapter in self.chapters:
            if chapter.ordinal == ordinal:
                return chapter
        raise ChapterNotFoundError(f"#{ordinal}", self.chapter_ids())

    def previous(self, chapter: Chapter) -> Chapter | None:
        """Chapter just before this one in narrative order, if any."""
        position = self._position(chapter)
        return self.chapters[position - 1] if position > 0 else None

    def next(self, chapter: Chapter) -> Chapter | None:
        """Chapter just after this one in narrative order, if any."""
        position = self._position(chapter)
        if position + 1 < len(self.chapters):
            return self.chapters[position + 1]
        return None

    def tags(self) -> dict[str, list[str]]:
        """Map each tag to the chapters carrying it."""
        index: dict[str, list[str]] = {}
        for chapter in self.chapters:
            for tag in chapter.tags:
                ids = index.setdefault(tag, [])
                if chapter.chapter_id not in ids:
                    ids.append(chapter.chapter_id)
        return dict(sorted(index.items(), key=lambda item: item[0].lower()))

    def _position(self, chapter: Chapter) -> int:
        for position, candidate in enumerate(self.chapters):
            if candidate.chapter_id == chapter.chapter_id:
                return position
        raise ChapterNotFoundError(chapter.chapter_id, self.chapter_ids())


def read_chapter_files(chapter_dir: Path) -> tuple[str, str | None, str | None]:
    """Read index.md and the optional answers.md / code.md of a chapter."""
    return (
        (chapter_dir / CHAPTER_FILE).read_text(encoding="utf-8"),
        _read_optional(chapter_dir / ANSWERS_FILE),
        _read_optional(chapter_dir / CODE_FILE),
    )


def _read_optional(path: Path) -> str | None:
    if path.exists():
        return path.read_text(encoding="utf-8")
    return None
