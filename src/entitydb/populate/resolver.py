"""Population resolver.

Replaces relation fields holding foreign IDs with the referenced entities.
Lookups are batched per relation: IDs are collected across all documents,
flattened and deduplicated, so each relation costs at most one call per
request regardless of how many documents share a reference.

Usage:
    resolver = PopulationResolver(normalize_rules({"author": "users.get"}), broker)
    docs = await resolver.populate(ctx, docs, ["author"])
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Hashable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from entitydb.fields.paths import MISSING, delete_path, get_path, set_path
from entitydb.populate.models import ActionRule, HandlerRule, PopulateRule

if TYPE_CHECKING:
    from entitydb.broker.context import Context
    from entitydb.broker.protocol import Broker

logger = logging.getLogger(__name__)


def _flatten(values: Iterable[Any]) -> Iterable[Any]:
    for value in values:
        if isinstance(value, list | tuple):
            yield from _flatten(value)
        else:
            yield value


def collect_ids(docs: Sequence[Mapping[str, Any]], field: str) -> list[Any]:
    """Collect the flattened, non-null, unique IDs of a relation field.

    Order of first occurrence is preserved.
    """
    values = (get_path(doc, field, None) for doc in docs)
    seen: dict[Any, None] = {}
    unhashable: list[Any] = []
    for value in _flatten(values):
        if value is None:
            continue
        if isinstance(value, Hashable):
            seen.setdefault(value, None)
        elif value not in unhashable:
            unhashable.append(value)
    return [*seen, *unhashable]


def _lookup(resolved: Mapping[Any, Any], id: Any) -> Any:
    """Find a resolved entity, tolerating str/int key mismatches."""
    if isinstance(id, Hashable) and id in resolved:
        return resolved[id]
    return resolved.get(str(id))


def apply_resolved(
    docs: Sequence[dict[str, Any]],
    field: str,
    resolved: Mapping[Any, Any] | None,
) -> None:
    """Replace relation values in place with resolved entities.

    List values become the list of matched entities (unmatched IDs dropped).
    Scalar values become the matched entity, or are removed when unmatched.
    """
    resolved = resolved if isinstance(resolved, Mapping) else {}
    for doc in docs:
        value = get_path(doc, field)
        if isinstance(value, list | tuple):
            models = [_lookup(resolved, id) for id in value]
            set_path(doc, field, [model for model in models if model is not None])
            continue
        model = _lookup(resolved, value) if value is not MISSING else None
        if model is None:
            delete_path(doc, field)
        else:
            set_path(doc, field, model)


class PopulationResolver:
    """Resolves configured relations for a batch of documents.

    Args:
        rules: Relation name to normalized rule.
        broker: Remote-call port used by ``ActionRule`` relations.
    """

    def __init__(self, rules: Mapping[str, PopulateRule], broker: Broker | None = None) -> None:
        self._rules = dict(rules)
        self._broker = broker

    @property
    def rules(self) -> dict[str, PopulateRule]:
        return self._rules

    async def populate(
        self,
        ctx: Context | None,
        docs: list[dict[str, Any]] | dict[str, Any],
        populate_fields: Sequence[str] | None,
    ) -> list[dict[str, Any]] | dict[str, Any]:
        """Populate the requested relations of one document or a collection.

        All relations resolve concurrently. The first failure propagates and no
        partial result is returned.
        """
        if not self._rules or not populate_fields:
            return docs
        if not isinstance(docs, list | dict):
            return docs

        arr = docs if isinstance(docs, list) else [docs]
        pending = [
            self._resolve(ctx, arr, rule)
            for name, rule in self._rules.items()
            if name in populate_fields
        ]
        if pending:
            await asyncio.gather(*pending)
        return docs

    async def _resolve(
        self,
        ctx: Context | None,
        docs: list[dict[str, Any]],
        rule: PopulateRule,
    ) -> None:
        ids = collect_ids(docs, rule.field)

        if isinstance(rule, HandlerRule):
            result = rule.handler(ids, docs, rule, ctx)
            if inspect.isawaitable(result):
                await result
            return

        if not ids:
            return
        resolved = await self._call_action(ctx, rule, ids)
        apply_resolved(docs, rule.field, resolved)

    async def _call_action(self, ctx: Context | None, rule: ActionRule, ids: list[Any]) -> Any:
        params: dict[str, Any] = {"id": ids, "mapping": True, "populate": rule.populate}
        params.update(rule.params)
        params["ignore_soft_delete"] = True

        logger.debug("Populating '%s' via '%s' with %d id(s)", rule.field, rule.action, len(ids))
        if self._broker is not None:
            return await self._broker.call(rule.action, params, ctx)
        if ctx is not None and ctx.broker is not None:
            return await ctx.call(rule.action, params)
        raise RuntimeError(f"No broker available to populate '{rule.field}' via '{rule.action}'")
