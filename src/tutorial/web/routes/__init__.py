"""Route handlers for the Web API."""

from tutorial.web.routes.health import router as health_router
from tutorial.web.routes.chapters import router as chapters_router
from tutorial.web.routes.tags import router as tags_router

__all__ = [
    "health_router",
    "chapters_router",
    "tags_router",
]
