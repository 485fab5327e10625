"""Admin endpoints: result cache maintenance."""

from fastapi import APIRouter, Depends, HTTPException

from virtualfit.dependencies import get_cache, require_admin
from virtualfit.services.cache import ResultCache

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])


@router.delete("/admin/cache")
async def clear_cache(cache: ResultCache = Depends(get_cache)):
    """Drop every cached generation result."""
    cleared = await cache.clear()
    if not cleared:
        raise HTTPException(status_code=500, detail="Failed to clear the cache.")
    return {"status": "ok"}


@router.delete("/admin/cache/{key}")
async def delete_cache_entry(key: str, cache: ResultCache = Depends(get_cache)):
    """Drop a single cached result by its request fingerprint."""
    if not key.isalnum():
        raise HTTPException(status_code=400, detail="Invalid cache key.")
    if not await cache.delete(key):
        raise HTTPException(status_code=404, detail="Cache entry not found.")
    return {"status": "ok"}
