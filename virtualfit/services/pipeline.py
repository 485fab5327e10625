"""The generation request pipeline.

validate -> cache key -> cache (hit returns) -> acquire image -> build prompt
-> Gemini -> persist -> cache store -> result

``GenerationPipeline.generate`` is the single error boundary: it returns
either a ``GenerationResult`` or a ``GenerationFailure`` and never raises for
expected failure categories.
"""

import logging
import time
from typing import Any, Protocol

import httpx
import pydantic

from virtualfit.errors import AppError, to_app_error, to_error_payload
from virtualfit.schemas.generation import (
    GenerationFailure,
    GenerationRequest,
    GenerationResult,
    is_data_uri,
)
from virtualfit.services.cache import ResultCache, derive_cache_key
from virtualfit.services.gemini import GeneratedImage
from virtualfit.services.images import AcquiredImage, acquire_image
from virtualfit.services.prompt import build_prompt
from virtualfit.services.storage import ImageStore
from virtualfit.services.validation import validate_request

logger = logging.getLogger(__name__)

# How much of an inline data URI is kept in metadata
SOURCE_PREVIEW_LENGTH = 50


class ImageGenerator(Protocol):
    async def generate_image(self, prompt_text: str, image: AcquiredImage) -> GeneratedImage:
        ...


def describe_source(reference: str) -> str:
    """Source reference as recorded in metadata; data URIs are truncated."""
    if is_data_uri(reference):
        return f"{reference[:SOURCE_PREVIEW_LENGTH]}... (base64)"
    return reference


class GenerationPipeline:
    def __init__(
        self,
        cache: ResultCache,
        store: ImageStore,
        generator: ImageGenerator,
        http_client: httpx.AsyncClient,
        download_timeout: float | None = None,
        expose_details: bool = False,
    ):
        self.cache = cache
        self.store = store
        self.generator = generator
        self.http_client = http_client
        self.download_timeout = download_timeout
        self.expose_details = expose_details

    async def generate(self, raw: Any) -> GenerationResult | GenerationFailure:
        """Run one generation request end to end."""
        start_time = time.time()
        try:
            result = await self._run(raw)
        except AppError as e:
            logger.error("Generation failed [%s]: %s", e.code, e.message)
            return GenerationFailure(error=to_error_payload(e, self.expose_details))
        except Exception as e:
            err = to_app_error(e)
            logger.exception("Unexpected error generating image [%s]: %s", err.code, e)
            return GenerationFailure(error=to_error_payload(err, self.expose_details))

        logger.info(
            "Generation finished in %dms: %s",
            int((time.time() - start_time) * 1000),
            result.generated_image_url,
        )
        return result

    async def _cached_result(self, key: str) -> GenerationResult | None:
        cached = await self.cache.get(key)
        if cached is None:
            return None
        try:
            return GenerationResult.model_validate(cached)
        except pydantic.ValidationError as e:
            logger.warning("Ignoring unreadable cache entry %s: %s", key, e)
            return None

    async def _run(self, raw: Any) -> GenerationResult:
        request: GenerationRequest = validate_request(raw)

        cache_key = derive_cache_key(request)
        cached = await self._cached_result(cache_key)
        if cached is not None:
            logger.info("Using cached generation result %s", cache_key)
            return cached

        image = await acquire_image(
            request.clothing_item_url, self.http_client, timeout=self.download_timeout
        )

        model_settings = request.model_settings
        environment_settings = request.environment_settings
        prompt = build_prompt(model_settings, environment_settings)

        logger.info(
            "Generating image for %s (%d byte %s input, prompt length %d)",
            cache_key,
            len(image.data),
            image.mime_type,
            len(prompt),
        )
        generated = await self.generator.generate_image(prompt, image)

        image_url = await self.store.save(
            generated.data,
            generated.mime_type,
            source_image=describe_source(request.clothing_item_url),
            model_settings=model_settings,
            environment_settings=environment_settings,
            prompt=prompt,
        )

        result = GenerationResult(generated_image_url=image_url, prompt_used=prompt)
        await self.cache.set(cache_key, result.model_dump(by_alias=True))
        return result
