"""History endpoint: GET /v1/history."""

from fastapi import APIRouter, Depends

from virtualfit.dependencies import get_store
from virtualfit.schemas.generation import HistoryItem, HistoryListResponse
from virtualfit.services.storage import ImageStore

router = APIRouter(tags=["history"])


# ---------------------------------------------------------------------------
# GET /v1/history
# ---------------------------------------------------------------------------
@router.get("/history", response_model=HistoryListResponse, response_model_by_alias=True)
async def get_history(
    page: int = 1,
    per_page: int = 12,
    store: ImageStore = Depends(get_store),
):
    """Return paginated, newest-first metadata for persisted generations."""
    per_page = max(1, min(per_page, 50))
    page = max(page, 1)
    offset = (page - 1) * per_page

    entries, total = await store.list_metadata(offset=offset, limit=per_page)
    items = [
        HistoryItem(image_url=image_url, metadata=metadata) for image_url, metadata in entries
    ]

    return HistoryListResponse(
        items=items,
        total=total,
        page=page,
        per_page=per_page,
        has_more=(offset + per_page) < total,
    )
