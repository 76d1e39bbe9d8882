"""Parameter sanitizer.

Normalizes raw, possibly string-typed caller input (e.g. from a query string)
into canonical ``QueryParams``. Sanitization never fails: malformed values are
dropped instead of raising.

Usage:
    params = sanitize_params({"page": "2", "pageSize": "5"}, Operation.LIST, settings)
    params.offset  # 5
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from entitydb.params.models import PARAM_ALIASES, Operation, QueryParams

if TYPE_CHECKING:
    from entitydb.config import EntitySettings

_NUMERIC_PARAMS = ("limit", "offset", "page", "page_size")
_LIST_PARAMS = ("sort", "fields", "populate", "search_fields")
_BOOL_PARAMS = ("mapping", "ignore_soft_delete")
_MIN_VALUES = {"limit": 0, "offset": 0, "page": 1, "page_size": 0}

_KNOWN = frozenset(
    (*_NUMERIC_PARAMS, *_LIST_PARAMS, *_BOOL_PARAMS, "search", "query", "id", "entity", "entities")
)


def to_number(value: Any) -> int | float | None:
    """Coerce a number-like value. Returns None for anything unparseable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return to_number(float(text))
        except ValueError:
            return None
    return None


def to_list(value: Any) -> list[str] | None:
    """Split a comma and/or whitespace separated string into a list."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.replace(",", " ").split()
    if isinstance(value, list | tuple):
        return [str(item) for item in value if item is not None]
    return None


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _numeric(key: str, value: Any) -> int | None:
    number = to_number(value)
    if not isinstance(number, int) or number < _MIN_VALUES[key]:
        return None
    return number


def sanitize_params(
    params: Mapping[str, Any] | None,
    operation: Operation | str,
    settings: EntitySettings,
) -> QueryParams:
    """Build canonical query parameters from raw caller input.

    Args:
        params: Raw parameters. Values may be strings.
        operation: Requested operation; ``list`` enables pagination mode.
        settings: Service settings holding the pagination bounds.

    Returns:
        Fresh ``QueryParams`` instance.
    """
    raw: dict[str, Any] = {}
    for key, value in (params or {}).items():
        raw[PARAM_ALIASES.get(key, key)] = value

    p = QueryParams(extra={k: v for k, v in raw.items() if k not in _KNOWN})

    for key in _NUMERIC_PARAMS:
        if raw.get(key) is not None:
            setattr(p, key, _numeric(key, raw[key]))

    for key in _LIST_PARAMS:
        setattr(p, key, to_list(raw.get(key)))

    for key in _BOOL_PARAMS:
        setattr(p, key, to_bool(raw.get(key, False)))

    search = raw.get("search")
    p.search = str(search) if search is not None else None
    query = raw.get("query")
    p.query = dict(query) if isinstance(query, Mapping) else None
    p.id = raw.get("id")
    entity = raw.get("entity")
    p.entity = dict(entity) if isinstance(entity, Mapping) else None
    entities = raw.get("entities")
    p.entities = list(entities) if isinstance(entities, list | tuple) else None

    if Operation(operation) is Operation.LIST:
        if not p.page_size:
            p.page_size = settings.page_size
        if not p.page:
            p.page = 1
        if settings.max_page_size > 0 and p.page_size > settings.max_page_size:
            p.page_size = settings.max_page_size

        p.limit = p.page_size
        p.offset = (p.page - 1) * p.page_size

    if settings.max_limit > 0 and p.limit is not None and p.limit > settings.max_limit:
        p.limit = settings.max_limit

    return p
