"""FastAPI app creation, router includes and lifespan."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from virtualfit.api.admin import router as admin_router
from virtualfit.api.files import router as files_router
from virtualfit.api.generations import router as generations_router
from virtualfit.api.history import router as history_router
from virtualfit.config import Settings, settings as default_settings
from virtualfit.services.cache import ResultCache
from virtualfit.services.gemini import GeminiClient
from virtualfit.services.pipeline import GenerationPipeline
from virtualfit.services.storage import ImageStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_pipeline(settings: Settings, http_client: httpx.AsyncClient) -> GenerationPipeline:
    """Wire the cache, image store and Gemini client into a pipeline."""
    gemini = GeminiClient(
        api_key=settings.GOOGLE_API_KEY,
        http_client=http_client,
        model=settings.GEMINI_MODEL,
        api_base=settings.GEMINI_API_BASE,
        timeout=settings.GENERATION_TIMEOUT_SECONDS,
    )
    return GenerationPipeline(
        cache=ResultCache(settings.CACHE_DIR, default_ttl=settings.cache_ttl),
        store=ImageStore(settings.STORAGE_ROOT),
        generator=gemini,
        http_client=http_client,
        download_timeout=settings.DOWNLOAD_TIMEOUT_SECONDS,
        expose_details=settings.is_development,
    )


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app. ``transport`` replaces the outbound HTTP transport (tests)."""
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient(transport=transport) as http_client:
            app.state.settings = settings
            app.state.pipeline = build_pipeline(settings, http_client)
            if not settings.GOOGLE_API_KEY:
                logger.warning("GOOGLE_API_KEY is not set; generation requests will fail.")
            logger.info(
                "VirtualFit ready (env=%s, model=%s, storage=%s, cache=%s)",
                settings.APP_ENV,
                settings.GEMINI_MODEL,
                settings.STORAGE_ROOT,
                settings.CACHE_DIR,
            )
            yield
            await app.state.pipeline.cache.aclose()
        logger.info("Shutting down")

    app = FastAPI(
        title="VirtualFit",
        description="AI-generated model photos for clothing items",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(generations_router, prefix="/v1")
    app.include_router(history_router, prefix="/v1")
    app.include_router(admin_router, prefix="/v1")
    app.include_router(files_router)

    return app


app = create_app()
