"""Field authorization and projection.

The allow-list defines the maximum exposable surface of an entity. Requested
fields outside it are dropped silently.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from entitydb.fields.paths import MISSING, get_path, parent_paths, set_path


def authorize_fields(
    fields: Sequence[str] | None,
    allowed: Sequence[str] | None,
) -> list[str] | None:
    """Compute the effective field list.

    Args:
        fields: Requested fields (``None`` = everything).
        allowed: Configured allow-list (``None``/empty = no restriction).

    Returns:
        The requested list unchanged when there is no allow-list. Otherwise
        each requested field is kept if allowed verbatim or through an allowed
        parent path, and a requested parent object is expanded into its allowed
        sub-paths.
    """
    if not allowed:
        return list(fields) if fields is not None else None

    result: list[str] = []
    if not fields:
        return result

    allowed_set = set(allowed)
    for name in fields:
        if name in allowed_set:
            result.append(name)
            continue

        if any(parent in allowed_set for parent in parent_paths(name)):
            result.append(name)
            continue

        prefix = name + "."
        result.extend(prop for prop in allowed if prop.startswith(prefix))

    return result


def filter_fields(doc: dict[str, Any], fields: Sequence[str] | None) -> dict[str, Any]:
    """Project a document onto the given (dotted) field list.

    ``None`` returns the document unchanged. Absent paths are skipped.
    """
    if fields is None:
        return doc

    result: dict[str, Any] = {}
    for name in fields:
        value = get_path(doc, name)
        if value is not MISSING:
            set_path(result, name, value)
    return result
