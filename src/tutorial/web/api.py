"""FastAPI application factory.

Main entry point for the tutorial Web API.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tutorial.config.app_config import AppConfig, load_app_config
from tutorial.core.chapter_parser import ChapterFormatError
from tutorial.core.content_store import (
    AmbiguousChapterIdError,
    ChapterNotFoundError,
    ContentStore,
    ContentStoreError,
)
from tutorial.core.quiz_extractor import MalformedQuizError
from tutorial.core.renderer import RenderError
from tutorial.web.routes import chapters_router, health_router, tags_router

logger = structlog.get_logger(__name__)

UNPROCESSABLE_CONTENT = 422


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    store: ContentStore = app.state.store
    try:
        chapters = store.list_chapters()
        logger.info(
            "api_startup",
            chapters_found=len(chapters),
            book_dir=str(store.book_dir.absolute()),
            chapter_ids=[c.chapter_id for c in chapters],
        )
    except (ContentStoreError, ChapterFormatError) as e:
        logger.warning("api_startup_no_content", book_dir=str(store.book_dir), error=str(e))
    yield


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ChapterNotFoundError)
    async def chapter_not_found(request: Request, exc: ChapterNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(AmbiguousChapterIdError)
    async def ambiguous_chapter(request: Request, exc: AmbiguousChapterIdError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(ChapterFormatError)
    async def malformed_chapter(request: Request, exc: ChapterFormatError) -> JSONResponse:
        logger.warning("malformed_chapter", chapter_id=exc.chapter_id, line=exc.line)
        return _error(UNPROCESSABLE_CONTENT, str(exc))

    @app.exception_handler(MalformedQuizError)
    async def malformed_quiz(request: Request, exc: MalformedQuizError) -> JSONResponse:
        return _error(UNPROCESSABLE_CONTENT, str(exc))

    @app.exception_handler(RenderError)
    async def render_failed(request: Request, exc: RenderError) -> JSONResponse:
        return _error(UNPROCESSABLE_CONTENT, str(exc))

    @app.exception_handler(ContentStoreError)
    async def store_unavailable(request: Request, exc: ContentStoreError) -> JSONResponse:
        logger.error("content_store_unavailable", error=str(exc))
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))


def create_app(book_dir: Path | None = None, config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        book_dir: Override the book directory from config
        config: Use this config instead of load_app_config()

    Returns:
        Configured FastAPI app instance
    """
    config = config or load_app_config()

    app = FastAPI(
        title="Tutorial Book API",
        description="Web API serving the Dracula EdgeQL tutorial chapters",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = ContentStore(book_dir or config.paths.book_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(chapters_router)
    app.include_router(tags_router)

    return app


# Default app instance for uvicorn
app = create_app()
