"""Typed failure categories raised by storage, rules and services.

Every error carries a machine-readable ``code``. Messages are written so they
never contain personal values (names, dates of birth, contact details); only
opaque ids and field names are interpolated.
"""

from typing import Any


class AppError(Exception):
    """Base class for all expected application failures."""

    default_code = "APP_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        field: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.field = field
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Serializable payload for the protocol boundary (context excluded)."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(AppError):
    """Malformed or out-of-constraint input. Always caller-fixable."""

    default_code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    """Referenced id does not exist in its collection."""

    default_code = "NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            context={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(AppError):
    """Well-formed request that violates a business invariant given current state."""

    default_code = "CONFLICT"


class AuthorizationError(AppError):
    """Operation is categorically disallowed right now."""

    default_code = "UNAUTHORIZED"


class StorageError(AppError):
    """Persistence layer could not complete the operation. May be transient."""

    default_code = "STORAGE_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        cause: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, context=context)
        self.cause = cause


def format_error_for_display(exc: BaseException) -> str:
    """Render an exception as a one-line operator message."""
    if isinstance(exc, AppError):
        if exc.field:
            return f"{exc.code}: {exc.message} (field: {exc.field})"
        return f"{exc.code}: {exc.message}"
    return "INTERNAL_ERROR: An unexpected error occurred"
