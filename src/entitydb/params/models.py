"""Canonical query parameter models.

Types shared by the sanitizer, the adapters and the operation handlers.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Operation(Enum):
    """Operations exposed by an entity service."""

    FIND = "find"
    COUNT = "count"
    LIST = "list"
    CREATE = "create"
    INSERT = "insert"
    GET = "get"
    UPDATE = "update"
    REMOVE = "remove"


PARAM_ALIASES: dict[str, str] = {
    "pageSize": "page_size",
    "searchFields": "search_fields",
    "ignoreSoftDelete": "ignore_soft_delete",
}
"""Wire-style (camelCase) parameter names accepted alongside snake_case."""


@dataclass
class QueryParams:
    """Canonical, per-request query parameters.

    Created fresh by the sanitizer for every request and never shared across
    requests. In pagination mode ``limit`` and ``offset`` are derived from
    ``page`` and ``page_size``.
    """

    populate: list[str] | None = None
    fields: list[str] | None = None
    limit: int | None = None
    offset: int | None = None
    page: int | None = None
    page_size: int | None = None
    sort: list[str] | None = None
    search: str | None = None
    search_fields: list[str] | None = None
    query: dict[str, Any] | None = None

    id: Any = None
    """Identity (or identities) for ``get``/``update``/``remove``."""

    mapping: bool = False
    """Return an identity-keyed mapping from ``get`` with a list of IDs."""

    ignore_soft_delete: bool = False
    """Bypass soft-delete filtering (used by internal relation lookups)."""

    entity: dict[str, Any] | None = None
    entities: list[dict[str, Any]] | None = None

    extra: dict[str, Any] = field(default_factory=dict)
    """Unrecognized parameters, kept verbatim."""

    def copy(self, **changes: Any) -> QueryParams:
        """Shallow copy with optional field overrides."""
        return dataclasses.replace(self, **changes)

    def pick(self, keys: tuple[str, ...]) -> dict[str, Any]:
        """Select a subset of parameters (used to build cache keys)."""
        return {key: getattr(self, key) for key in keys}
