"""Local filesystem storage for generated images and their metadata sidecars.

Layout under the storage root::

    generated/<filename>          image bytes
    metadata/<filename>.json      PersistedMetadata
"""

import hashlib
import json
import logging
import time
from pathlib import Path

import aiofiles
import aiofiles.os
import pydantic

from virtualfit.errors import ImageProcessingError
from virtualfit.schemas.generation import (
    EnvironmentSettings,
    ModelSettings,
    PersistedMetadata,
)

logger = logging.getLogger(__name__)

GENERATED_DIR = "generated"
METADATA_DIR = "metadata"

EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}
CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
}


def unique_filename(data: bytes, mime_type: str, timestamp_ms: int) -> str:
    """``<epoch-ms>-<8 hex of sha256(data + epoch-ms)><ext>``."""
    digest = hashlib.sha256(data + str(timestamp_ms).encode("ascii")).hexdigest()
    ext = EXTENSIONS.get(mime_type.lower(), ".png")
    return f"{timestamp_ms}-{digest[:8]}{ext}"


def content_type_for(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return CONTENT_TYPES.get(ext, "application/octet-stream")


def _sort_key(name: str) -> tuple[int, str]:
    prefix = name.split("-", 1)[0]
    return (int(prefix) if prefix.isdigit() else 0, name)


class ImageStore:
    """Append-only store for generated images."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.generated_dir = self.root / GENERATED_DIR
        self.metadata_dir = self.root / METADATA_DIR

    @staticmethod
    def public_url(filename: str) -> str:
        return f"/{GENERATED_DIR}/{filename}"

    def _resolve(self, filename: str) -> Path:
        """Resolve a bare filename inside the image store, rejecting traversal."""
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise FileNotFoundError(f"Invalid file name: {filename!r}")
        return self.generated_dir / filename

    async def save(
        self,
        data: bytes,
        mime_type: str,
        source_image: str,
        model_settings: ModelSettings,
        environment_settings: EnvironmentSettings,
        prompt: str = "",
    ) -> str:
        """Write the image and its metadata sidecar; return the public reference.

        Raises:
            ImageProcessingError: if either write fails.
        """
        timestamp_ms = int(time.time() * 1000)
        filename = unique_filename(data, mime_type, timestamp_ms)
        metadata = PersistedMetadata(
            timestamp=timestamp_ms,
            source_image=source_image,
            model_settings=model_settings,
            environment_settings=environment_settings,
            mime_type=mime_type,
            prompt=prompt,
        )

        image_path = self.generated_dir / filename
        try:
            await aiofiles.os.makedirs(self.generated_dir, exist_ok=True)
            await aiofiles.os.makedirs(self.metadata_dir, exist_ok=True)

            async with aiofiles.open(image_path, mode="wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Error saving generated image %s: %s", filename, e)
            raise ImageProcessingError("Failed to save the generated image.", cause=e) from e

        try:
            await self._write_metadata(filename, metadata)
        except OSError as e:
            logger.error("Error saving metadata for %s: %s", filename, e)
            # Keep generated/ and metadata/ one-to-one
            try:
                await aiofiles.os.remove(image_path)
            except OSError as remove_error:
                logger.warning("Could not remove orphan image %s: %s", filename, remove_error)
            raise ImageProcessingError(
                "Failed to save the generated image metadata.", cause=e
            ) from e

        url = self.public_url(filename)
        logger.info("Saved generated image to %s (%d bytes)", url, len(data))
        return url

    async def _write_metadata(self, filename: str, metadata: PersistedMetadata) -> None:
        async with aiofiles.open(
            self.metadata_dir / f"{filename}.json", mode="w", encoding="utf-8"
        ) as f:
            await f.write(json.dumps(metadata.model_dump(by_alias=True), indent=2))

    async def load(self, filename: str) -> bytes:
        """Load a persisted image by filename."""
        path = self._resolve(filename)
        if not await aiofiles.os.path.isfile(path):
            raise FileNotFoundError(f"File not found: {path}")
        async with aiofiles.open(path, mode="rb") as f:
            return await f.read()

    async def _sidecar_names(self) -> list[str]:
        """Metadata sidecar names, newest first by their epoch-ms prefix."""
        if not await aiofiles.os.path.isdir(self.metadata_dir):
            return []
        names = [n for n in await aiofiles.os.listdir(self.metadata_dir) if n.endswith(".json")]
        names.sort(key=_sort_key, reverse=True)
        return names

    async def _read_metadata(self, name: str) -> PersistedMetadata | None:
        try:
            async with aiofiles.open(self.metadata_dir / name, encoding="utf-8") as f:
                return PersistedMetadata.model_validate_json(await f.read())
        except (OSError, pydantic.ValidationError) as e:
            logger.warning("Skipping unreadable metadata file %s: %s", name, e)
            return None

    async def list_metadata(
        self, offset: int = 0, limit: int | None = None
    ) -> tuple[list[tuple[str, PersistedMetadata]], int]:
        """One page of metadata, newest first, plus the total sidecar count.

        Only the sidecars inside the requested page are read. Unreadable ones
        are skipped, so a page can hold fewer than ``limit`` entries.
        """
        names = await self._sidecar_names()
        page = names[offset:] if limit is None else names[offset : offset + limit]

        entries: list[tuple[str, PersistedMetadata]] = []
        for name in page:
            metadata = await self._read_metadata(name)
            if metadata is not None:
                entries.append((self.public_url(name.removesuffix(".json")), metadata))
        return entries, len(names)
