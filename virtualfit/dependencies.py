"""Shared FastAPI dependencies."""

import hmac

from fastapi import HTTPException, Request

from virtualfit.config import Settings
from virtualfit.services.cache import ResultCache
from virtualfit.services.pipeline import GenerationPipeline
from virtualfit.services.storage import ImageStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pipeline(request: Request) -> GenerationPipeline:
    return request.app.state.pipeline


def get_cache(request: Request) -> ResultCache:
    return request.app.state.pipeline.cache


def get_store(request: Request) -> ImageStore:
    return request.app.state.pipeline.store


def require_admin(request: Request) -> None:
    """Dependency that raises 403 unless X-Admin-Token matches ADMIN_TOKEN."""
    expected = get_settings(request).ADMIN_TOKEN
    supplied = request.headers.get("x-admin-token", "")
    if not expected or not hmac.compare_digest(supplied.encode(), expected.encode()):
        raise HTTPException(status_code=403, detail="Admin access required.")
