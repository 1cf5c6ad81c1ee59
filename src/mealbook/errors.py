"""Typed errors raised by the mealbook core."""

from typing import Any


class MealbookError(Exception):
    """Base exception for mealbook errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 500,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.context = context or {}

    def to_response(self) -> dict[str, Any]:
        """Render the error as a JSON-serializable payload."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "context": self.context,
            }
        }


class NotFoundError(MealbookError):
    """Raised when an id does not resolve to a record."""

    def __init__(self, entity: str, identifier: str, message: str | None = None):
        super().__init__(
            message or f"{entity} not found: {identifier}",
            code="NOT_FOUND",
            status_code=404,
            context={"entity": entity, "identifier": identifier},
        )
        self.entity = entity
        self.identifier = identifier


class ValidationError(MealbookError):
    """Raised when a request is well-formed but not acceptable."""

    def __init__(self, entity: str, message: str, field: str | None = None):
        super().__init__(
            message,
            code="VALIDATION_FAILED",
            status_code=400,
            context={"entity": entity, "field": field},
        )
        self.entity = entity
        self.field = field


class ConflictError(MealbookError):
    """Raised when a write would break a uniqueness rule."""

    def __init__(self, entity: str, message: str):
        super().__init__(
            message,
            code="CONFLICT",
            status_code=409,
            context={"entity": entity},
        )
        self.entity = entity


class IdentityRaceError(ConflictError):
    """
    An insert lost a uniqueness race and the winning row was gone on re-query.

    Only find-or-create raises this, and it retries internally. Callers never
    see it unless every attempt loses.
    """

    def __init__(self, name: str):
        super().__init__("ingredient", f"Lost identity race for ingredient '{name}'")
        self.name = name
