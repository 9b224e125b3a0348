"""Quiz region extraction.

A chapter may end with a practice region delimited by

    <!-- quiz-start -->
    1. First question
    2. Second question
    <!-- quiz-end -->

    [Here are the answers to the questions.](answers.md)

extract_quiz() is pure: it reads the parsed chapter and never touches disk.
"""

from __future__ import annotations

import re

import structlog

from tutorial.core.chapter_parser import FENCE_CLOSE_PATTERN, FENCE_OPEN_PATTERN
from tutorial.core.models import Chapter, CodeBlock, LinkRole, Quiz, QuizQuestion

logger = structlog.get_logger(__name__)

QUESTION_PATTERN = re.compile(r"^\s*(\d+)[.)]\s+(.*)$")


class MalformedQuizError(Exception):
    """Raised when quiz delimiters are unbalanced or the answers link is missing."""

    def __init__(self, chapter_id: str, reason: str, line: int = 0):
        self.chapter_id = chapter_id
        self.reason = reason
        self.line = line
        where = f"{chapter_id}:{line}" if line else chapter_id
        super().__init__(f"{where}: malformed quiz region ({reason})")


def extract_quiz(chapter: Chapter) -> Quiz | None:
    """Extract the quiz region of a chapter.

    Args:
        chapter: Parsed chapter

    Returns:
        Quiz with its questions and answers link, or None if the chapter
        has no quiz region

    Raises:
        MalformedQuizError: If markers are unbalanced, out of order,
            repeated, the region is empty, or no answers link follows it
    """
    if not chapter.quiz_markers:
        logger.debug("quiz.absent", chapter_id=chapter.chapter_id)
        return None

    starts = [m for m in chapter.quiz_markers if m.kind == "start"]
    ends = [m for m in chapter.quiz_markers if m.kind == "end"]

    if not starts:
        raise MalformedQuizError(chapter.chapter_id, "end marker without start", ends[0].line)
    if not ends:
        raise MalformedQuizError(chapter.chapter_id, "start marker is never closed", starts[0].line)
    if len(starts) > 1 or len(ends) > 1:
        extra = (starts[1:] or ends[1:])[0]
        raise MalformedQuizError(chapter.chapter_id, "more than one quiz region", extra.line)

    start, end = starts[0], ends[0]
    if end.line < start.line:
        raise MalformedQuizError(chapter.chapter_id, "end marker before start marker", end.line)

    region = chapter.source.splitlines()[start.line : end.line - 1]
    questions = _parse_questions(region, first_line=start.line + 1)
    if not questions:
        raise MalformedQuizError(chapter.chapter_id, "quiz region has no questions", start.line)

    answers = [
        link
        for link in chapter.links
        if link.role == LinkRole.ANSWERS and link.line > end.line
    ]
    if not answers:
        raise MalformedQuizError(chapter.chapter_id, "no answers link after the quiz", end.line)

    logger.debug(
        "quiz.extracted",
        chapter_id=chapter.chapter_id,
        questions=len(questions),
        answers=answers[0].target,
    )

    return Quiz(
        chapter_id=chapter.chapter_id,
        questions=tuple(questions),
        answers_link=answers[0],
        start_line=start.line,
        end_line=end.line,
    )


def _parse_questions(lines: list[str], first_line: int) -> list[QuizQuestion]:
    """Split the numbered list inside a quiz region into questions.

    Prose continuation lines are joined with single spaces. Fenced code
    inside a question is kept literally on the question.
    """
    questions: list[QuizQuestion] = []
    number: int | None = None
    text: list[str] = []
    code: list[CodeBlock] = []

    fence: str | None = None
    fence_lang = ""
    fence_line = 0
    fence_lines: list[str] = []

    def finish() -> None:
        if number is not None:
            questions.append(
                QuizQuestion(number=number, text=" ".join(text), code=tuple(code))
            )

    for offset, line in enumerate(lines):
        if fence is not None:
            close = FENCE_CLOSE_PATTERN.match(line.strip())
            if close and len(close.group(1)) >= len(fence):
                code.append(
                    CodeBlock(
                        language=fence_lang,
                        text=_dedent("\n".join(fence_lines)),
                        line=fence_line,
                    )
                )
                fence = None
                fence_lines = []
            else:
                fence_lines.append(line)
            continue

        opening = FENCE_OPEN_PATTERN.match(line.strip())
        if opening:
            fence = opening.group(1)
            fence_lang = opening.group(2)
            fence_line = first_line + offset
            continue

        item = QUESTION_PATTERN.match(line)
        if item:
            finish()
            number = int(item.group(1))
            text = [item.group(2).strip()] if item.group(2).strip() else []
            code = []
        elif line.strip() and number is not None:
            text.append(line.strip())

    finish()
    return questions


def _dedent(text: str) -> str:
    lines = text.splitlines()
    indents = [len(ln) - len(ln.lstrip()) for ln in lines if ln.strip()]
    cut = min(indents) if indents else 0
    return "\n".join(ln[cut:] for ln in lines)
