"""Dotted-path access into nested entity records.

Usage:
    get_path({"address": {"city": "Rome"}}, "address.city")  # "Rome"
    set_path(target, "address.city", "Rome")
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any


class _Missing:
    """Sentinel for absent paths (distinct from a stored ``None``)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def get_path(doc: Any, path: str, default: Any = MISSING) -> Any:
    """Read a dotted path. List segments are addressed by integer index."""
    current = doc
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return default
            current = current[index]
        else:
            return default
    return current


def set_path(doc: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate mappings as needed."""
    parts = path.split(".")
    current: MutableMapping[str, Any] = doc
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, MutableMapping):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def parent_paths(path: str) -> list[str]:
    """Strict ancestors of a dotted path, nearest first.

    ``parent_paths("a.b.c")`` returns ``["a.b", "a"]``.
    """
    parts = path.split(".")
    return [".".join(parts[:i]) for i in range(len(parts) - 1, 0, -1)]


def delete_path(doc: MutableMapping[str, Any], path: str) -> None:
    """Remove a dotted path if present."""
    parts = path.split(".")
    parent = get_path(doc, ".".join(parts[:-1])) if len(parts) > 1 else doc
    if isinstance(parent, MutableMapping):
        parent.pop(parts[-1], None)
