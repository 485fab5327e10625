"""Generation endpoint: POST /v1/generations."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from virtualfit.dependencies import get_pipeline
from virtualfit.errors import ValidationError, to_error_payload
from virtualfit.schemas.generation import GenerationFailure, GenerationResult
from virtualfit.services.pipeline import GenerationPipeline

router = APIRouter(tags=["generations"])

# Error code -> HTTP status
STATUS_CODES = {
    "VALIDATION_ERROR": 400,
    "NETWORK_ERROR": 502,
    "API_ERROR": 502,
    "PROCESSING_ERROR": 500,
}


def _failure_response(failure: GenerationFailure) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_CODES.get(failure.error.code, 500),
        content=failure.model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# POST /v1/generations
# ---------------------------------------------------------------------------
@router.post(
    "/generations",
    response_model=GenerationResult,
    responses={code: {"model": GenerationFailure} for code in (400, 500, 502)},
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": {"type": "object"}}},
        }
    },
)
async def create_generation(
    request: Request,
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    """Generate (or fetch from cache) an image of a model wearing the item."""
    # Malformed JSON is reported in the same {error} shape
    try:
        body = await request.json()
    except ValueError:
        error = ValidationError("Request body must be valid JSON.")
        return _failure_response(GenerationFailure(error=to_error_payload(error)))

    outcome = await pipeline.generate(body)

    if isinstance(outcome, GenerationFailure):
        return _failure_response(outcome)
    return JSONResponse(content=outcome.model_dump(by_alias=True))
