"""Typed failures raised by entity services.

Every error carries a machine-readable ``code``, an HTTP-like ``status`` and a
JSON-serializable ``data`` mapping so request surfaces can render them without
knowing the concrete class.

Usage:
    try:
        await posts.get({"id": "missing"})
    except EntityNotFoundError as err:
        err.status  # 404
        err.data  # {"id": "missing"}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class EntityDBError(Exception):
    """Base exception for all entitydb errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code (UPPER_SNAKE_CASE).
        status: HTTP-like status code.
        data: Additional context (JSON-serializable).
    """

    default_code = "ENTITYDB_ERROR"
    default_status = 500

    def __init__(
        self,
        message: str = "",
        *,
        code: str | None = None,
        status: int | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.status = status if status is not None else self.default_status
        self.data = dict(data or {})

    def asdict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization and logging."""
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "status": self.status,
            "data": {k: self.data[k] for k in sorted(self.data)},
        }


class BadRequestError(EntityDBError):
    """Client sent a malformed request."""

    default_code = "BAD_REQUEST"
    default_status = 400


class ValidationError(EntityDBError):
    """Entity rejected by the configured validator."""

    default_code = "VALIDATION_ERROR"
    default_status = 422

    def __init__(self, message: str = "Entity validation error!", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class EntityNotFoundError(EntityDBError):
    """No record exists for the given identity."""

    default_code = "ENTITY_NOT_FOUND"
    default_status = 404

    def __init__(self, id: Any) -> None:
        super().__init__("Entity not found", data={"id": id})
        self.id = id


class EntityLogicallyNotFoundError(EntityDBError):
    """Record exists but carries an active soft-delete marker."""

    default_code = "ENTITY_LOGICALLY_NOT_FOUND"
    default_status = 404

    def __init__(self, id: Any) -> None:
        super().__init__("Entity logically not found", data={"id": id})
        self.id = id


class ServiceNotFoundError(EntityDBError):
    """Broker has no handler registered for an action name."""

    default_code = "SERVICE_NOT_FOUND"
    default_status = 404

    def __init__(self, action: str) -> None:
        super().__init__(f"Service '{action}' is not found.", data={"action": action})
        self.action = action


class ServiceSchemaError(EntityDBError):
    """Service was constructed with an invalid configuration."""

    default_code = "SERVICE_SCHEMA_ERROR"
    default_status = 500
