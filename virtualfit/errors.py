"""Error taxonomy for the generation pipeline and its mapping to API payloads.

Every component raises one of the ``AppError`` subclasses below. The pipeline
boundary turns whatever was raised into a ``GenerationError`` payload with a
fixed code, so callers only ever see ``VALIDATION_ERROR``, ``NETWORK_ERROR``,
``API_ERROR`` or ``PROCESSING_ERROR``.
"""

import traceback

from virtualfit.schemas.generation import GenerationError

NETWORK_KEYWORDS = ("network", "fetch", "timeout", "connection")
IMAGE_KEYWORDS = ("image", "png", "jpg", "jpeg", "webp")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing your request."
NETWORK_ERROR_MESSAGE = (
    "Failed to download the clothing image or reach the AI service. "
    "Please check the image link and your connection, then try again."
)
PROCESSING_ERROR_MESSAGE = "Failed to process the generated image."


class AppError(Exception):
    """Base class for all pipeline errors."""

    code = "PROCESSING_ERROR"

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ValidationError(AppError):
    """Bad input; the offending wire field is carried in ``field``."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NetworkError(AppError):
    """Transport failure, timeout, or a non-success download status."""

    code = "NETWORK_ERROR"

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, cause)
        self.status_code = status_code


class ApiError(AppError):
    """The generation backend returned nothing usable, or is not configured."""

    code = "API_ERROR"

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, cause)
        self.status_code = status_code


class ImageProcessingError(AppError):
    """Malformed image data, or no image found in the backend response."""

    code = "PROCESSING_ERROR"


class CacheError(AppError):
    """Cache read/write failure. Always absorbed by the cache itself."""

    code = "PROCESSING_ERROR"

    def __init__(self, message: str, key: str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause)
        self.key = key


def to_app_error(exc: BaseException) -> AppError:
    """Classify any exception into the AppError taxonomy."""
    if isinstance(exc, AppError):
        return exc

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()
    if any(word in lowered for word in NETWORK_KEYWORDS):
        return NetworkError(message, cause=exc)
    if any(word in lowered for word in IMAGE_KEYWORDS):
        return ImageProcessingError(message, cause=exc)
    return AppError(message, cause=exc)


def to_error_payload(exc: BaseException, expose_details: bool = False) -> GenerationError:
    """Build the user-facing error payload for an exception.

    Field names, upstream status codes and the reason an image could not be
    processed are always safe to return. The exception type, wrapped cause
    and traceback are only attached when ``expose_details`` is set
    (development mode).
    """
    err = to_app_error(exc)
    reclassified = err is not exc
    details: dict = {}

    if isinstance(err, ValidationError):
        message = err.message
        if err.field:
            details["field"] = err.field
    elif isinstance(err, NetworkError):
        message = NETWORK_ERROR_MESSAGE
        if err.status_code is not None:
            details["status_code"] = err.status_code
    elif isinstance(err, ApiError):
        message = err.message
        if err.status_code is not None:
            details["status_code"] = err.status_code
    elif isinstance(err, ImageProcessingError):
        message = PROCESSING_ERROR_MESSAGE
        # Reclassified errors carry raw exception text
        if not reclassified:
            details["reason"] = err.message
    else:
        message = GENERIC_ERROR_MESSAGE

    if expose_details:
        details["error"] = err.message
        details["type"] = type(err.cause or err).__name__
        if err.cause is not None:
            details["cause"] = str(err.cause)
        source = err.cause or err
        if source.__traceback__ is not None:
            details["traceback"] = "".join(
                traceback.format_exception(type(source), source, source.__traceback__)
            )

    return GenerationError(code=err.code, message=message, details=details or None)
