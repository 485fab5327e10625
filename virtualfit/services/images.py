"""Resolve the clothing image reference into bytes + MIME type."""

import base64
import binascii
import logging
import re
from dataclasses import dataclass

import httpx

from virtualfit.errors import ImageProcessingError, NetworkError
from virtualfit.schemas.generation import is_data_uri

logger = logging.getLogger(__name__)

FALLBACK_MIME_TYPE = "image/png"

_DATA_URI_RE = re.compile(r"^data:(image/[a-zA-Z]+);base64,(.*)$", re.DOTALL)


@dataclass(frozen=True)
class AcquiredImage:
    data: bytes
    mime_type: str

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


def decode_data_uri(data_uri: str) -> AcquiredImage:
    """Decode a ``data:image/<type>;base64,`` URI."""
    match = _DATA_URI_RE.match(data_uri)
    if not match:
        raise ImageProcessingError("Invalid image data format provided.")

    mime_type, payload = match.group(1), match.group(2).strip()
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageProcessingError("Image data is not valid base64.", cause=e) from e
    if not data:
        raise ImageProcessingError("Image data is empty.")
    return AcquiredImage(data=data, mime_type=mime_type)


async def download_image(
    url: str,
    client: httpx.AsyncClient,
    timeout: float | None = None,
) -> AcquiredImage:
    """GET ``url`` and return its body.

    A missing or non-image content type falls back to image/png with a
    warning; generation is still attempted.
    """
    logger.info("Downloading clothing image from %s", url)
    try:
        resp = await client.get(url, timeout=timeout, follow_redirects=True)
    except httpx.TimeoutException as e:
        raise NetworkError(f"Timed out downloading image from {url}", cause=e) from e
    except httpx.HTTPError as e:
        raise NetworkError(f"Failed to download image from {url}", cause=e) from e

    if not resp.is_success:
        logger.error("Image download from %s returned %d", url, resp.status_code)
        raise NetworkError(
            f"Failed to download image: {resp.status_code} {resp.reason_phrase}",
            status_code=resp.status_code,
        )

    content_type = resp.headers.get("content-type", "")
    mime_type = content_type.split(";", 1)[0].strip().lower()
    if not mime_type.startswith("image/"):
        logger.warning(
            "Downloaded content type is not an image: %r. Attempting to proceed as %s.",
            content_type or None,
            FALLBACK_MIME_TYPE,
        )
        mime_type = FALLBACK_MIME_TYPE

    return AcquiredImage(data=resp.content, mime_type=mime_type)


async def acquire_image(
    reference: str,
    client: httpx.AsyncClient,
    timeout: float | None = None,
) -> AcquiredImage:
    """Decode an inline data URI, or download a remote URL."""
    if is_data_uri(reference):
        logger.debug("Using inline base64 image data")
        return decode_data_uri(reference)
    return await download_image(reference, client, timeout=timeout)
