"""Serve persisted images: GET /generated/{filename}."""

from fastapi import APIRouter, Depends, HTTPException, Response

from virtualfit.dependencies import get_store
from virtualfit.services.storage import ImageStore, content_type_for

router = APIRouter(tags=["files"])


@router.get("/generated/{filename}")
async def serve_generated_image(filename: str, store: ImageStore = Depends(get_store)):
    """Serve a generated image from the local image store."""
    try:
        data = await store.load(filename)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="File not found.")

    return Response(content=data, media_type=content_type_for(filename))
