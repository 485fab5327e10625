"""Pydantic request/response schemas for the generation pipeline."""

import re
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

# data:image/<subtype>;base64,<payload>
DATA_URI_PATTERN = re.compile(r"^data:image/[a-zA-Z]+;base64,")
MIN_IMAGE_REFERENCE_LENGTH = 20

Gender = Literal["male", "female", "non-binary"]
BodyType = Literal["slim", "athletic", "average", "plus-size"]
AgeRange = Literal["18-25", "26-35", "36-45", "46-60", "60+"]
Ethnicity = Literal["caucasian", "black", "asian", "hispanic", "middle-eastern", "mixed"]
LightingStyle = Literal["natural", "studio", "soft", "dramatic", "bright"]
LensStyle = Literal["portrait", "fashion", "product", "editorial", "casual"]
ErrorCode = Literal["VALIDATION_ERROR", "NETWORK_ERROR", "API_ERROR", "PROCESSING_ERROR"]


def is_data_uri(value: str) -> bool:
    """True if ``value`` looks like a base64 image data URI."""
    return bool(DATA_URI_PATTERN.match(value))


# ---------------------------------------------------------------------------
# Settings passed to the prompt builder and stored in metadata
# ---------------------------------------------------------------------------

class ModelSettings(BaseModel):
    model_config = {"populate_by_name": True, "frozen": True}

    gender: Gender
    body_type: BodyType = Field(..., alias="bodyType")
    age_range: AgeRange = Field(..., alias="ageRange")
    ethnicity: Ethnicity


class EnvironmentSettings(BaseModel):
    model_config = {"populate_by_name": True, "frozen": True}

    description: str = Field(..., min_length=3, max_length=200)
    lighting: LightingStyle
    lens_style: LensStyle = Field(..., alias="lensStyle")


# ---------------------------------------------------------------------------
# Request schema
# ---------------------------------------------------------------------------

class GenerationRequest(BaseModel):
    """A validated generation request. Field order is the validation order."""

    model_config = {"populate_by_name": True, "frozen": True, "protected_namespaces": ()}

    clothing_item_url: str = Field(
        ..., alias="clothingItemUrl", description="http(s) URL or base64 image data URI"
    )
    model_gender: Gender = Field(..., alias="modelGender")
    model_body_type: BodyType = Field(..., alias="modelBodyType")
    model_age_range: AgeRange = Field(..., alias="modelAgeRange")
    model_ethnicity: Ethnicity = Field(..., alias="modelEthnicity")
    environment_description: str = Field(
        ..., alias="environmentDescription", min_length=3, max_length=200
    )
    lighting_style: LightingStyle = Field(..., alias="lightingStyle")
    lens_style: LensStyle = Field(..., alias="lensStyle")

    @field_validator("clothing_item_url")
    @classmethod
    def _check_image_reference(cls, value: str) -> str:
        if not is_data_uri(value):
            parsed = urlparse(value)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(
                    "Must be a valid URL starting with http(s):// or a base64 image Data URI"
                )
        if len(value) < MIN_IMAGE_REFERENCE_LENGTH:
            raise ValueError("Input seems too short to be a valid URL or Data URI")
        return value

    @property
    def model_settings(self) -> ModelSettings:
        return ModelSettings(
            gender=self.model_gender,
            body_type=self.model_body_type,
            age_range=self.model_age_range,
            ethnicity=self.model_ethnicity,
        )

    @property
    def environment_settings(self) -> EnvironmentSettings:
        return EnvironmentSettings(
            description=self.environment_description,
            lighting=self.lighting_style,
            lens_style=self.lens_style,
        )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class GenerationResult(BaseModel):
    model_config = {"populate_by_name": True, "frozen": True}

    generated_image_url: str = Field(..., alias="generatedImageUrl")
    prompt_used: str = Field(..., alias="promptUsed")


class GenerationError(BaseModel):
    code: ErrorCode
    message: str
    details: dict | None = None


class GenerationFailure(BaseModel):
    error: GenerationError


# ---------------------------------------------------------------------------
# Persisted metadata + history schemas
# ---------------------------------------------------------------------------

class PersistedMetadata(BaseModel):
    """Sidecar JSON written next to every persisted image."""

    model_config = {"populate_by_name": True, "protected_namespaces": ()}

    timestamp: int = Field(..., description="Epoch milliseconds")
    source_image: str = Field(..., alias="sourceImage")
    model_settings: ModelSettings = Field(..., alias="modelSettings")
    environment_settings: EnvironmentSettings = Field(..., alias="environmentSettings")
    mime_type: str = Field(default="image/png", alias="mimeType")
    prompt: str = ""


class HistoryItem(BaseModel):
    model_config = {"populate_by_name": True}

    image_url: str = Field(..., alias="imageUrl")
    metadata: PersistedMetadata


class HistoryListResponse(BaseModel):
    items: list[HistoryItem]
    total: int
    page: int
    per_page: int
    has_more: bool
