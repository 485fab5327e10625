"""Shared fixtures: settings, a fake upstream (image host + Gemini) and clients."""

import httpx
import pytest
from fastapi.testclient import TestClient

from virtualfit.config import Settings
from virtualfit.main import create_app
from virtualfit.services.cache import ResultCache
from virtualfit.services.gemini import GeminiClient
from virtualfit.services.pipeline import GenerationPipeline
from virtualfit.services.storage import ImageStore
from tests.helpers import PNG_BYTES, FakeUpstream


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def sample_image_bytes():
    return PNG_BYTES


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        APP_ENV="production",
        GOOGLE_API_KEY="test-key",
        STORAGE_ROOT=str(tmp_path / "storage"),
        CACHE_DIR=str(tmp_path / "cache"),
        ADMIN_TOKEN="admin-secret",
    )


@pytest.fixture
async def http_client(upstream):
    async with httpx.AsyncClient(transport=upstream.transport) as client:
        yield client


@pytest.fixture
async def pipeline(settings, http_client):
    pipeline = GenerationPipeline(
        cache=ResultCache(settings.CACHE_DIR, default_ttl=settings.cache_ttl),
        store=ImageStore(settings.STORAGE_ROOT),
        generator=GeminiClient(api_key=settings.GOOGLE_API_KEY, http_client=http_client),
        http_client=http_client,
        download_timeout=settings.DOWNLOAD_TIMEOUT_SECONDS,
        expose_details=False,
    )
    yield pipeline
    await pipeline.cache.aclose()


@pytest.fixture
def client(settings, upstream):
    app = create_app(settings, transport=upstream.transport)
    with TestClient(app) as test_client:
        yield test_client
