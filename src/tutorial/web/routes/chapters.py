"""Chapter endpoints."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse

from tutorial.core.content_store import ContentStore
from tutorial.core.models import CodeBlock
from tutorial.core.quiz_extractor import extract_quiz
from tutorial.core.renderer import render
from tutorial.web.schemas import (
    BlockResponse,
    ChapterDetail,
    ChapterListResponse,
    ChapterSummary,
    LinkResponse,
    QuizQuestionResponse,
    QuizResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/chapters", tags=["chapters"])


def get_store(request: Request) -> ContentStore:
    """Content store attached to the application."""
    return request.app.state.store


@router.get("", response_model=ChapterListResponse)
async def list_chapters(store: ContentStore = Depends(get_store)) -> ChapterListResponse:
    """List all chapters in narrative order."""
    chapters = [
        ChapterSummary(
            id=c.chapter_id,
            ordinal=c.ordinal,
            title=c.title,
            tags=list(c.tags),
            has_quiz=c.has_quiz,
        )
        for c in store.list_chapters()
    ]

    logger.info("chapters_list", count=len(chapters))

    return ChapterListResponse(chapters=chapters, count=len(chapters))


@router.get("/{chapter_id}", response_model=ChapterDetail)
async def get_chapter(chapter_id: str, store: ContentStore = Depends(get_store)) -> ChapterDetail:
    """Get a chapter with its blocks and navigation."""
    chapter = store.get(chapter_id)
    previous = store.previous(chapter)
    following = store.next(chapter)

    blocks = [
        BlockResponse(
            kind=b.block_kind.value,
            line=b.line,
            text=b.text,
            language=(b.language or "plain") if isinstance(b, CodeBlock) else None,
        )
        for b in chapter.blocks
    ]

    return ChapterDetail(
        id=chapter.chapter_id,
        ordinal=chapter.ordinal,
        title=chapter.title,
        tags=list(chapter.tags),
        blocks=blocks,
        links=[
            LinkResponse(text=ln.text, target=ln.target, role=ln.role.value)
            for ln in chapter.links
        ],
        up_next=chapter.up_next,
        previous_id=previous.chapter_id if previous else None,
        next_id=following.chapter_id if following else None,
        has_quiz=chapter.has_quiz,
        has_answers=chapter.answers is not None,
        has_code_so_far=chapter.code_so_far is not None,
    )


@router.get("/{chapter_id}/page", response_class=HTMLResponse)
async def get_chapter_page(
    chapter_id: str, request: Request, store: ContentStore = Depends(get_store)
) -> HTMLResponse:
    """Render a chapter as an HTML page."""
    config = request.app.state.config
    chapter = store.get(chapter_id)
    page = render(
        chapter,
        store=store,
        site_title=config.site.title,
        labels=config.site.languages,
    )
    return HTMLResponse(content=page.html)


@router.get("/{chapter_id}/quiz", response_model=QuizResponse)
async def get_chapter_quiz(chapter_id: str, store: ContentStore = Depends(get_store)) -> QuizResponse:
    """Get the quiz region of a chapter."""
    chapter = store.get(chapter_id)
    quiz = extract_quiz(chapter)

    if quiz is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chapter '{chapter.chapter_id}' has no quiz",
        )

    return QuizResponse(
        chapter_id=quiz.chapter_id,
        questions=[
            QuizQuestionResponse(
                number=q.number,
                text=q.text,
                code=[block.text for block in q.code],
            )
            for q in quiz.questions
        ],
        answers_url=quiz.answers_link.target,
    )
