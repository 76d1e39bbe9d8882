"""Cross-entity population (relation resolution)."""

from entitydb.populate.models import (
    ActionRule,
    HandlerRule,
    PopulateHandler,
    PopulateRule,
    normalize_rule,
    normalize_rules,
)
from entitydb.populate.resolver import PopulationResolver, apply_resolved, collect_ids

__all__ = [
    # Rules
    "ActionRule",
    "HandlerRule",
    "PopulateRule",
    "PopulateHandler",
    "normalize_rule",
    "normalize_rules",
    # Resolver
    "PopulationResolver",
    "apply_resolved",
    "collect_ids",
]
