"""Tag index endpoint."""

from fastapi import APIRouter, Depends

from tutorial.core.content_store import ContentStore
from tutorial.web.routes.chapters import get_store
from tutorial.web.schemas import TagIndexResponse

router = APIRouter(prefix="/api/tags", tags=["tags"])


@router.get("", response_model=TagIndexResponse)
async def list_tags(store: ContentStore = Depends(get_store)) -> TagIndexResponse:
    """Map each tag to the chapters that carry it."""
    index = store.tags()
    return TagIndexResponse(tags=index, count=len(index))
