"""Entity validation.

The validator is pluggable:

- ``None``: every entity is accepted.
- a pydantic model class: entities must pass ``model_validate``.
- a callable (sync or async): returning ``False`` or raising
  ``ValidationError`` rejects the entity.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import pydantic

from entitydb.errors import ValidationError

EntityValidator = Callable[[dict[str, Any]], Awaitable[None]]
"""Signature: (entity) -> awaitable; raises ValidationError on rejection."""


def _is_pydantic_model(cls: Any) -> bool:
    """Check if value is a Pydantic model class."""
    return isinstance(cls, type) and issubclass(cls, pydantic.BaseModel)


def build_validator(validator: Any) -> EntityValidator | None:
    """Compile a validator definition into an async checker.

    Raises:
        TypeError: If the definition is neither a model class nor callable.
    """
    if validator is None:
        return None

    if _is_pydantic_model(validator):

        async def check_model(entity: dict[str, Any]) -> None:
            try:
                validator.model_validate(entity)
            except pydantic.ValidationError as e:
                raise ValidationError(
                    data={"errors": e.errors(include_url=False, include_context=False)}
                ) from e

        return check_model

    if callable(validator):

        async def check_callable(entity: dict[str, Any]) -> None:
            result = validator(entity)
            if inspect.isawaitable(result):
                result = await result
            if result is False:
                raise ValidationError(data={"entity": entity})

        return check_callable

    raise TypeError(f"Invalid entity validator: {validator!r}")
