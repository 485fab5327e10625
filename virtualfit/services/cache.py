"""Request fingerprinting and the file-backed result cache.

The cache is an optimisation only: every storage failure is logged and
degrades to a miss (``get``/``has``) or a no-op (``set``/``delete``/``clear``).
"""

import asyncio
import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
import pydantic
from pydantic import BaseModel, Field

from virtualfit.errors import CacheError
from virtualfit.schemas.generation import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60

# Sentinel: "use the cache's configured default TTL"
_DEFAULT_TTL = object()


def derive_cache_key(request: GenerationRequest) -> str:
    """Return a stable sha256 fingerprint of the request's field values."""
    canonical = {
        "clothingUrl": request.clothing_item_url,
        "model": {
            "gender": request.model_gender,
            "bodyType": request.model_body_type,
            "ageRange": request.model_age_range,
            "ethnicity": request.model_ethnicity,
        },
        "environment": {
            "description": request.environment_description,
            "lighting": request.lighting_style,
            "lens": request.lens_style,
        },
    }
    serialized = json.dumps(canonical, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class CacheEntry(BaseModel):
    """On-disk shape of one cache file. Times are epoch milliseconds."""

    model_config = {"populate_by_name": True}

    data: Any
    timestamp: int
    expires_at: int | None = Field(..., alias="expiresAt")


def _now_ms() -> int:
    return int(time.time() * 1000)


class ResultCache:
    """Key -> JSON payload store, one ``<key>.json`` file per entry."""

    def __init__(self, base_path: Path | str, default_ttl: float | None = DEFAULT_TTL_SECONDS):
        self.base_path = Path(base_path)
        self.default_ttl = default_ttl
        self._evictions: set[asyncio.Task] = set()
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Could not create cache directory %s: %s", self.base_path, e)

    def _path(self, key: str) -> Path:
        return self.base_path / f"{key}.json"

    # -- reads -------------------------------------------------------------

    async def _read_entry(self, key: str) -> CacheEntry | None:
        path = self._path(key)
        try:
            if not await aiofiles.os.path.exists(path):
                return None
            async with aiofiles.open(path, encoding="utf-8") as f:
                raw = await f.read()
        except OSError as e:
            raise CacheError(f"Cache read failed for {key}", key=key, cause=e) from e

        try:
            return CacheEntry.model_validate_json(raw)
        except pydantic.ValidationError as e:
            raise CacheError(f"Malformed cache entry for {key}", key=key, cause=e) from e

    async def get(self, key: str) -> Any | None:
        """Return the cached payload, or None on miss, expiry or failure."""
        try:
            entry = await self._read_entry(key)
        except CacheError as e:
            logger.warning("%s: %s", e.message, e.cause)
            return None

        if entry is None:
            return None

        if entry.expires_at is not None and entry.expires_at < _now_ms():
            logger.debug("Cache entry %s expired", key)
            self._evict_later(key)
            return None

        return entry.data

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    # -- writes ------------------------------------------------------------

    async def set(self, key: str, data: Any, ttl: Any = _DEFAULT_TTL) -> None:
        """Store ``data`` under ``key``.

        ``ttl`` is in seconds; ``None`` stores an entry that never expires.
        Omitting it applies the cache's default TTL.
        """
        if ttl is _DEFAULT_TTL:
            ttl = self.default_ttl
        now = _now_ms()
        entry = {
            "data": data,
            "timestamp": now,
            "expiresAt": now + int(ttl * 1000) if ttl is not None else None,
        }
        try:
            payload = json.dumps(entry)
            await aiofiles.os.makedirs(self.base_path, exist_ok=True)
            async with aiofiles.open(self._path(key), mode="w", encoding="utf-8") as f:
                await f.write(payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    async def delete(self, key: str) -> bool:
        try:
            await aiofiles.os.remove(self._path(key))
            return True
        except OSError as e:
            logger.warning("Cache delete failed for %s: %s", key, e)
            return False

    async def clear(self) -> bool:
        """Remove every entry. Returns False if the cache directory is unreadable."""
        try:
            names = await aiofiles.os.listdir(self.base_path)
        except OSError as e:
            logger.error("Cache clear failed: %s", e)
            return False

        for name in names:
            try:
                await aiofiles.os.remove(self.base_path / name)
            except OSError as e:
                logger.warning("Failed to delete cache file %s: %s", name, e)
        logger.info("Cleared %d cache entries", len(names))
        return True

    # -- lazy eviction -----------------------------------------------------

    def _evict_later(self, key: str) -> None:
        task = asyncio.get_running_loop().create_task(self.delete(key))
        self._evictions.add(task)
        task.add_done_callback(self._evictions.discard)

    async def aclose(self) -> None:
        """Wait for pending lazy evictions to finish."""
        if self._evictions:
            await asyncio.gather(*self._evictions, return_exceptions=True)
