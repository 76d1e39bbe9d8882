"""Population rule models.

A relation rule is one of two tagged variants:

- ``ActionRule``: resolve IDs through a named remote operation in mapping mode.
- ``HandlerRule``: a custom resolver that performs its own replacement.

User-facing shorthands are normalized once, at service construction:

    populates = {
        "author": "users.get",                                  # action name
        "tags": {"action": "tags.get", "params": {"fields": "name"}},
        "stats": compute_stats,                                 # custom handler
    }
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from entitydb.broker.context import Context

PopulateHandler = Callable[
    [list[Any], list[dict[str, Any]], "HandlerRule", "Context | None"],
    "Awaitable[Any] | Any",
]
"""Signature: (ids, docs, rule, ctx) -> None (sync or async). Mutates ``docs`` in place."""


@dataclass(frozen=True, slots=True)
class ActionRule:
    """Resolve relation IDs by calling a remote ``get``-style operation.

    Attributes:
        field: Relation field holding the foreign ID(s). Dotted paths allowed.
        action: Fully qualified action name, e.g. ``"users.get"``.
        params: Extra parameters merged into the call.
        populate: Nested populate list forwarded to the related service.
    """

    field: str
    action: str
    params: Mapping[str, Any] = field(default_factory=dict)
    populate: list[str] | str | None = None


@dataclass(frozen=True, slots=True)
class HandlerRule:
    """Resolve relation IDs with a user-supplied function."""

    field: str
    handler: PopulateHandler


PopulateRule = ActionRule | HandlerRule


def normalize_rule(field_name: str, rule: Any) -> PopulateRule:
    """Convert a user-supplied rule shorthand into a tagged rule.

    Args:
        field_name: Relation field the rule is registered under.
        rule: Action name, mapping ``{action, params?, populate?, field?}``,
            callable, or an already built rule.

    Raises:
        TypeError: If the rule has an unsupported shape.
    """
    if isinstance(rule, ActionRule | HandlerRule):
        return rule
    if isinstance(rule, str):
        return ActionRule(field=field_name, action=rule)
    if isinstance(rule, Mapping):
        if "action" not in rule:
            raise TypeError(f"Populate rule for '{field_name}' has no 'action'")
        return ActionRule(
            field=rule.get("field", field_name),
            action=rule["action"],
            params=dict(rule.get("params") or {}),
            populate=rule.get("populate"),
        )
    if callable(rule):
        return HandlerRule(field=field_name, handler=rule)
    raise TypeError(f"Invalid populate rule for '{field_name}': {rule!r}")


def normalize_rules(populates: Mapping[str, Any] | None) -> dict[str, PopulateRule]:
    """Normalize a relation-name to rule mapping."""
    return {name: normalize_rule(name, rule) for name, rule in (populates or {}).items()}
