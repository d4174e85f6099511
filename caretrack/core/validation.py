"""Input validation against pydantic schemas."""

import uuid
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from caretrack.core.errors import ValidationError

S = TypeVar("S", bound=BaseModel)


def _field_name(loc: tuple[Any, ...]) -> str | None:
    parts = [str(part) for part in loc if not isinstance(part, int)]
    return ".".join(parts) or None


def validate_input(schema: type[S], data: S | Mapping[str, Any] | None) -> S:
    """
    Validate ``data`` against ``schema``.

    Accepts an already-built schema instance or a plain mapping. The first
    pydantic error is reported; the offending value itself is never echoed.

    Raises:
        ValidationError: With ``code=SCHEMA_VALIDATION_FAILED`` and the field path.
    """
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as exc:
        first = exc.errors(include_url=False, include_input=False)[0]
        field = _field_name(tuple(first.get("loc", ())))
        message = first.get("msg", "Invalid input")
        raise ValidationError(
            f"{field}: {message}" if field else message,
            "SCHEMA_VALIDATION_FAILED",
            field=field,
        ) from None


def require_id(value: Any, resource_type: str, field: str | None = None) -> str:
    """
    Check an id argument is a non-empty UUID string.

    Raises:
        ValidationError: ``INVALID_<RESOURCE>_ID``.
    """
    code = f"INVALID_{resource_type.upper().replace(' ', '_')}_ID"
    field = field or f"{resource_type.lower().replace(' ', '_')}_id"
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{resource_type} ID is required", code, field=field)
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise ValidationError(f"Invalid {resource_type.lower()} ID format", code, field=field) from None


def new_id() -> str:
    return str(uuid.uuid4())
