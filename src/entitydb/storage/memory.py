"""Local in-memory storage adapter.

Simple dict-based storage suitable for single-process use and testing.
Records keep insertion order, so repeated queries are deterministic.

Query support:
    {"status": "draft"}                       equality (dotted paths allowed)
    {"votes": {"$gte": 3}}                    $eq $ne $gt $gte $lt $lte $in $nin $exists
    {"$or": [{...}, {...}]}                   $and / $or

Usage:
    adapter = MemoryAdapter([{"_id": "1", "title": "Hello"}])
    await adapter.connect()
    docs = await adapter.find(QueryParams(sort=["-votes"], limit=10))
"""

from __future__ import annotations

import copy as cp
import uuid
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from entitydb.fields.paths import MISSING, delete_path, get_path, set_path
from entitydb.params import QueryParams

_OPERATORS = frozenset(("$eq", "$ne", "$in", "$nin", "$exists", "$gt", "$gte", "$lt", "$lte"))


def _compare(op: str, value: Any, operand: Any) -> bool:
    if op not in _OPERATORS:
        raise ValueError(f"Unsupported query operator: {op}")
    if op == "$eq":
        return value == operand
    if op == "$ne":
        return value != operand
    if op == "$in":
        return value in operand
    if op == "$nin":
        return value not in operand
    if op == "$exists":
        return (value is not MISSING) == bool(operand)
    if value is MISSING or value is None:
        return False
    try:
        if op == "$gt":
            return value > operand
        if op == "$gte":
            return value >= operand
        if op == "$lt":
            return value < operand
        if op == "$lte":
            return value <= operand
    except TypeError:
        pass
    return False


def matches(doc: Mapping[str, Any], query: Mapping[str, Any] | None) -> bool:
    """Check whether a record satisfies a query mapping."""
    for key, condition in (query or {}).items():
        if key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
            continue
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
            continue

        value = get_path(doc, key)
        if isinstance(condition, Mapping) and condition and all(
            str(op).startswith("$") for op in condition
        ):
            if not all(_compare(op, value, operand) for op, operand in condition.items()):
                return False
        elif value is MISSING or value != condition:
            return False
    return True


def _search_matches(doc: Mapping[str, Any], text: str, fields: Sequence[str] | None) -> bool:
    needle = text.lower()
    if fields:
        values: Iterable[Any] = (get_path(doc, name) for name in fields)
    else:
        values = doc.values()
    return any(isinstance(v, str | int | float) and needle in str(v).lower() for v in values)


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is MISSING or value is None:
        return (0, 0)
    if isinstance(value, bool | int | float):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


class MemoryAdapter:
    """In-memory adapter storing records in an insertion-ordered dict.

    Structure:
        _records[id] = record

    Args:
        records: Optional initial records (identities generated when missing).
    """

    native_id_field = "_id"

    def __init__(self, records: Iterable[dict[str, Any]] | None = None) -> None:
        self._records: dict[Any, dict[str, Any]] = {}
        self.connected = False
        for record in records or ():
            self._store(record)

    def _store(self, entity: Mapping[str, Any]) -> dict[str, Any]:
        record = cp.deepcopy(dict(entity))
        if record.get("_id") is None:
            record["_id"] = uuid.uuid4().hex
        if record["_id"] in self._records:
            raise ValueError(f"Duplicate identity: {record['_id']!r}")
        self._records[record["_id"]] = record
        return record

    def _select(self, params: QueryParams | None) -> list[dict[str, Any]]:
        params = params or QueryParams()
        docs = [doc for doc in self._records.values() if matches(doc, params.query)]
        if params.search:
            docs = [d for d in docs if _search_matches(d, params.search, params.search_fields)]
        return docs

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def find(self, params: QueryParams | None = None) -> list[dict[str, Any]]:
        """Find records. ``limit`` of 0 or None means unlimited."""
        params = params or QueryParams()
        docs = self._select(params)

        # Multi-key sort: apply keys from last to first (sort is stable)
        for key in reversed(params.sort or []):
            descending = key.startswith("-")
            name = key[1:] if descending else key
            docs.sort(key=lambda d, n=name: _sort_key(get_path(d, n)), reverse=descending)

        if params.offset:
            docs = docs[params.offset :]
        if params.limit:
            docs = docs[: params.limit]
        return cp.deepcopy(docs)

    async def count(self, params: QueryParams | None = None) -> int:
        return len(self._select(params))

    async def find_by_id(self, id: Any) -> dict[str, Any] | None:
        record = self._records.get(id)
        return cp.deepcopy(record) if record is not None else None

    async def find_by_ids(self, ids: Sequence[Any]) -> list[dict[str, Any]]:
        return [cp.deepcopy(self._records[id]) for id in ids if id in self._records]

    async def insert(self, entity: dict[str, Any]) -> dict[str, Any]:
        return cp.deepcopy(self._store(entity))

    async def insert_many(self, entities: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        return [cp.deepcopy(self._store(entity)) for entity in entities]

    async def update_by_id(self, id: Any, patch: dict[str, Any]) -> dict[str, Any] | None:
        """Apply ``$set``, ``$unset`` and ``$inc``. A plain mapping acts as ``$set``."""
        record = self._records.get(id)
        if record is None:
            return None

        if not any(str(key).startswith("$") for key in patch):
            patch = {"$set": patch}

        for name, value in (patch.get("$set") or {}).items():
            if name != "_id":
                set_path(record, name, cp.deepcopy(value))
        for name in patch.get("$unset") or {}:
            delete_path(record, name)
        for name, amount in (patch.get("$inc") or {}).items():
            current = get_path(record, name, 0)
            set_path(record, name, current + amount)
        return cp.deepcopy(record)

    async def remove_by_id(self, id: Any) -> dict[str, Any] | None:
        return self._records.pop(id, None)

    def entity_to_object(self, entity: Any) -> dict[str, Any]:
        return cp.deepcopy(dict(entity))

    def before_save_transform_id(self, entity: dict[str, Any], id_field: str) -> dict[str, Any]:
        new_entity = dict(entity)
        if id_field != self.native_id_field and id_field in new_entity:
            new_entity[self.native_id_field] = new_entity.pop(id_field)
        return new_entity

    def after_retrieve_transform_id(self, entity: dict[str, Any], id_field: str) -> dict[str, Any]:
        if id_field != self.native_id_field and self.native_id_field in entity:
            entity[id_field] = entity.pop(self.native_id_field)
        return entity

    def clear(self) -> None:
        """Remove every record."""
        self._records.clear()
