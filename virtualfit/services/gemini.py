"""Image generation via the Gemini ``generateContent`` REST API."""

import base64
import binascii
import logging
import time
from dataclasses import dataclass

import httpx
import pydantic
from pydantic import AliasChoices, BaseModel, Field

from virtualfit.errors import ApiError, ImageProcessingError, NetworkError
from virtualfit.services.images import AcquiredImage

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash-exp"
DEFAULT_TIMEOUT_SECONDS = 120.0


# ---------------------------------------------------------------------------
# Response schema: candidates -> content -> parts (text | inlineData)
# ---------------------------------------------------------------------------

class InlineData(BaseModel):
    mime_type: str = Field(
        default="image/png", validation_alias=AliasChoices("mimeType", "mime_type")
    )
    data: str = ""


class Part(BaseModel):
    text: str | None = None
    inline_data: InlineData | None = Field(
        default=None, validation_alias=AliasChoices("inlineData", "inline_data")
    )


class Content(BaseModel):
    role: str | None = None
    parts: list[Part] = []


class Candidate(BaseModel):
    content: Content | None = None
    finish_reason: str | None = Field(
        default=None, validation_alias=AliasChoices("finishReason", "finish_reason")
    )


class PromptFeedback(BaseModel):
    block_reason: str | None = Field(
        default=None, validation_alias=AliasChoices("blockReason", "block_reason")
    )


class GenerateContentResponse(BaseModel):
    candidates: list[Candidate] = []
    prompt_feedback: PromptFeedback | None = Field(
        default=None, validation_alias=AliasChoices("promptFeedback", "prompt_feedback")
    )


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str


def extract_image(response: GenerateContentResponse) -> GeneratedImage:
    """Return the first inline image in the first candidate.

    Text parts are logged and skipped; they never end the scan.
    """
    if not response.candidates:
        reason = response.prompt_feedback.block_reason if response.prompt_feedback else None
        message = "The AI service returned no candidates."
        if reason:
            message = f"The AI service returned no candidates (blocked: {reason})."
        raise ApiError(message)

    candidate = response.candidates[0]
    if candidate.content is None or not candidate.content.parts:
        raise ImageProcessingError(
            "The AI service returned an empty or malformed response "
            f"(finish reason: {candidate.finish_reason or 'unknown'})."
        )

    for part in candidate.content.parts:
        if part.inline_data is not None and part.inline_data.data:
            try:
                data = base64.b64decode(part.inline_data.data, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ImageProcessingError(
                    "The AI service returned undecodable image data.", cause=e
                ) from e
            return GeneratedImage(data=data, mime_type=part.inline_data.mime_type)
        if part.text:
            logger.info("Received text part from Gemini: %s", part.text[:500])

    raise ImageProcessingError("No image found in the AI service response.")


class GeminiClient:
    """Thin async client for multimodal image generation."""

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        model: str = DEFAULT_MODEL,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.http_client = http_client
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def _build_payload(self, prompt_text: str, image: AcquiredImage) -> dict:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt_text},
                        {
                            "inlineData": {
                                "mimeType": image.mime_type,
                                "data": image.to_base64(),
                            }
                        },
                    ],
                }
            ],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }

    async def generate_image(self, prompt_text: str, image: AcquiredImage) -> GeneratedImage:
        """Send the prompt + clothing image and return the generated image.

        Raises:
            ApiError: missing API key, non-2xx status, unparsable body, no candidates.
            NetworkError: transport failure or timeout.
            ImageProcessingError: empty candidate or no image data in it.
        """
        if not self.api_key:
            raise ApiError("GOOGLE_API_KEY is not configured.")

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        start_time = time.time()
        try:
            resp = await self.http_client.post(
                self.endpoint,
                json=self._build_payload(prompt_text, image),
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise NetworkError("Timed out waiting for the AI service.", cause=e) from e
        except httpx.HTTPError as e:
            raise NetworkError("Failed to connect to the AI service.", cause=e) from e

        if not resp.is_success:
            error_detail = resp.text[:500]
            logger.error("Gemini API returned %d: %s", resp.status_code, error_detail)
            raise ApiError(
                f"AI service error (HTTP {resp.status_code}).",
                status_code=resp.status_code,
            )

        try:
            parsed = GenerateContentResponse.model_validate(resp.json())
        except (ValueError, pydantic.ValidationError) as e:
            raise ApiError("The AI service returned an unreadable response.", cause=e) from e

        generated = extract_image(parsed)
        logger.info(
            "Gemini %s generated %d bytes (%s) in %dms",
            self.model,
            len(generated.data),
            generated.mime_type,
            int((time.time() - start_time) * 1000),
        )
        return generated
