"""Input validation for raw generation requests."""

import logging
from typing import Any

import pydantic

from virtualfit.errors import ValidationError
from virtualfit.schemas.generation import GenerationRequest

logger = logging.getLogger(__name__)

# Python field name -> wire (camelCase) name, so errors always name the wire field.
_WIRE_NAMES: dict[str, str] = {
    name: (info.alias or name) for name, info in GenerationRequest.model_fields.items()
}
_WIRE_NAMES.update({alias: alias for alias in list(_WIRE_NAMES.values())})


def _field_from_loc(loc: tuple) -> str | None:
    if not loc:
        return None
    head = str(loc[0])
    return _WIRE_NAMES.get(head, head)


def validate_request(raw: Any) -> GenerationRequest:
    """Validate a raw request object and return a GenerationRequest.

    Only the first failure (in field declaration order) is reported.

    Raises:
        ValidationError: naming the offending field and the reason.
    """
    if isinstance(raw, GenerationRequest):
        return raw
    if not isinstance(raw, dict):
        raise ValidationError("Request body must be an object.")

    try:
        return GenerationRequest.model_validate(raw)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = _field_from_loc(first.get("loc", ()))
        message = first.get("msg", "Invalid value")
        # Strip pydantic's "Value error, " prefix from custom validator messages
        if first.get("type") == "value_error" and message.startswith("Value error, "):
            message = message[len("Value error, "):]
        logger.info("Rejected generation request: %s (%s)", message, field)
        raise ValidationError(message, field=field) from e
