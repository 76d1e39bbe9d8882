"""EntityService: uniform data access for one entity collection.

Usage:
    users = EntityService(EntitySettings(name="users"), broker=broker)
    posts = EntityService(
        EntitySettings(name="posts", fields=["_id", "title", "author"]),
        adapter=MemoryAdapter(),
        broker=broker,
        populates={"author": "users.get"},
        hooks=PostHooks(),
    )
    broker.register(users)
    broker.register(posts)
    await broker.start()

    page = await posts.list({"page": 2, "populate": "author"})
    post = await posts.create({"title": "Hello", "author": "u1"})
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

import tenacity

from entitydb.broker.context import Context
from entitydb.config import EntitySettings
from entitydb.errors import (
    BadRequestError,
    EntityLogicallyNotFoundError,
    EntityNotFoundError,
    ServiceSchemaError,
)
from entitydb.params import Operation, QueryParams, sanitize_params
from entitydb.populate import PopulationResolver, normalize_rules
from entitydb.service.invalidation import CacheInvalidator
from entitydb.service.lifecycle import LifecycleDispatcher, LifecycleEvent, call_hook, get_hook
from entitydb.service.transform import DocumentTransformer
from entitydb.service.validation import build_validator
from entitydb.storage import Adapter, MemoryAdapter

if TYPE_CHECKING:
    from entitydb.broker.local import ActionHandler
    from entitydb.broker.protocol import Broker, Cacher

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_KEYS: dict[Operation, tuple[str, ...]] = {
    Operation.FIND: (
        "populate", "fields", "limit", "offset", "sort", "search", "search_fields", "query",
    ),
    Operation.COUNT: ("search", "search_fields", "query"),
    Operation.LIST: (
        "populate", "fields", "page", "page_size", "sort", "search", "search_fields", "query",
        "ignore_soft_delete",
    ),
    Operation.GET: ("id", "populate", "fields", "mapping", "ignore_soft_delete"),
}
"""Parameters that make up the cache key of each cached operation."""


class EntityService:
    """Query, retrieval and mutation operations over one storage adapter.

    Composition root: wires the sanitizer, adapter, transformer, population
    resolver, cache invalidator and lifecycle dispatcher together. Override
    ``encode_id``/``decode_id`` in a subclass for opaque identities.

    Args:
        settings: Service configuration. Keyword overrides are applied on top.
        adapter: Storage adapter (defaults to a fresh ``MemoryAdapter``).
        broker: Remote-call and broadcast port, used for population and
            cache invalidation events.
        cacher: Cache port. Defaults to ``broker.cacher`` when present.
        populates: Relation name to population rule.
        entity_validator: Validator for ``create``/``insert`` (pydantic model
            class or callable).
        hooks: Object or mapping with optional ``entity_created``,
            ``entity_updated``, ``entity_removed`` and ``after_connected`` hooks.
        **overrides: Individual settings overriding ``settings``.

    Raises:
        ServiceSchemaError: If the service has no name.
    """

    def __init__(
        self,
        settings: EntitySettings | None = None,
        *,
        adapter: Adapter | None = None,
        broker: Broker | None = None,
        cacher: Cacher | None = None,
        populates: Mapping[str, Any] | None = None,
        entity_validator: Any = None,
        hooks: Any = None,
        **overrides: Any,
    ) -> None:
        settings = settings or EntitySettings()
        if overrides:
            settings = type(settings).model_validate({**settings.model_dump(), **overrides})
        if not settings.name:
            raise ServiceSchemaError("Service name is required")

        self.settings = settings
        self.adapter: Adapter = adapter if adapter is not None else MemoryAdapter()
        self.broker = broker
        self.cacher = cacher if cacher is not None else getattr(broker, "cacher", None)
        self.hooks = hooks

        self._validator = build_validator(entity_validator)
        self.resolver = PopulationResolver(normalize_rules(populates), broker)
        self.transformer = DocumentTransformer(
            self.adapter, settings, self.resolver, encode_id=self.encode_id
        )
        self.invalidator = CacheInvalidator(settings.full_name, broker, self.cacher)
        self.dispatcher = LifecycleDispatcher(hooks)

    @property
    def name(self) -> str:
        return self.settings.name

    @property
    def full_name(self) -> str:
        return self.settings.full_name

    def __repr__(self) -> str:
        return f"EntityService({self.full_name!r}, adapter={type(self.adapter).__name__})"

    # --- Dispatch ---

    def actions(self) -> dict[str, ActionHandler]:
        """Fully qualified action name to broker handler, for every operation."""

        def make_handler(operation: Operation) -> ActionHandler:
            async def handler(params: Mapping[str, Any], ctx: Context) -> Any:
                return await self.call(operation, params, ctx)

            return handler

        return {f"{self.full_name}.{op.value}": make_handler(op) for op in Operation}

    async def call(
        self,
        operation: Operation | str,
        params: Mapping[str, Any] | None = None,
        ctx: Context | None = None,
    ) -> Any:
        """Invoke an operation by name, e.g. ``await service.call("list", {...})``."""
        operation = Operation(operation)
        method: Callable[..., Awaitable[Any]] = getattr(self, operation.value)
        return await method(params, ctx)

    def _context(
        self, operation: Operation, params: Mapping[str, Any] | None, ctx: Context | None
    ) -> Context:
        if ctx is not None:
            return ctx
        return Context(
            action=f"{self.full_name}.{operation.value}",
            params=dict(params or {}),
            broker=self.broker,
        )

    # --- Operations ---

    async def find(
        self, params: Mapping[str, Any] | None = None, ctx: Context | None = None
    ) -> Any:
        """Find entities by query.

        Params: populate, fields, limit, offset, sort, search, search_fields, query.

        Returns:
            List of found entities.
        """
        ctx = self._context(Operation.FIND, params, ctx)
        p = sanitize_params(params, Operation.FIND, self.settings)
        return await self._cached(Operation.FIND, p, lambda: self._find(ctx, p))

    async def count(
        self, params: Mapping[str, Any] | None = None, ctx: Context | None = None
    ) -> int:
        """Count entities matching search, search_fields and query."""
        p = sanitize_params(params, Operation.COUNT, self.settings)
        return await self._cached(Operation.COUNT, p, lambda: self._count(p))

    async def list(
        self, params: Mapping[str, Any] | None = None, ctx: Context | None = None
    ) -> dict[str, Any]:
        """List entities with pagination.

        Params: find parameters with page and page_size instead of limit/offset.
        Under soft-delete mode, deleted records are excluded unless
        ``ignore_soft_delete`` is set.

        Returns:
            ``{"rows", "total", "page", "page_size", "total_pages"}``
        """
        ctx = self._context(Operation.LIST, params, ctx)
        p = sanitize_params(params, Operation.LIST, self.settings)
        if self.settings.soft_delete and not p.ignore_soft_delete:
            p.query = {
                **(p.query or {}),
                self.settings.soft_delete_field: self.settings.not_deleted_marker,
            }
        return await self._cached(Operation.LIST, p, lambda: self._list(ctx, p))

    async def create(
        self, params: Mapping[str, Any] | None = None, ctx: Context | None = None
    ) -> Any:
        """Create a new entity from the given fields.

        Raises:
            ValidationError: If the entity is rejected by the validator.
        """
        ctx = self._context(Operation.CREATE, params, ctx)
        return await self._create(ctx, dict(params or {}))

    async def insert(
        self, params: Mapping[str, Any] | None = None, ctx: Context | None = None
    ) -> Any:
        """Insert one (``entity``) or many (``entities``) entities.

        Raises:
            BadRequestError: If neither ``entity`` nor ``entities`` is given.
            ValidationError: If an entity is rejected by the validator.
        """
        ctx = self._context(Operation.INSERT, params, ctx)
        p = sanitize_params(params, Operation.INSERT, self.settings)
        return await self._insert(ctx, p)

    async def get(
        self, params: Mapping[str, Any] | None = None, ctx: Context | None = None
    ) -> Any:
        """Get entity(ies) by ID(s).

        Params: id (one or a list), populate, fields, mapping.
        With ``mapping`` and a list of IDs, returns ``{id: entity}``.

        Raises:
            EntityNotFoundError: If a single ID has no record.
            EntityLogicallyNotFoundError: If a record is soft-deleted.
        """
        ctx = self._context(Operation.GET, params, ctx)
        p = sanitize_params(params, Operation.GET, self.settings)
        return await self._cached(Operation.GET, p, lambda: self._get(ctx, p))

    async def update(
        self, params: Mapping[str, Any] | None = None, ctx: Context | None = None
    ) -> Any:
        """Update an entity by ID. Every non-identity parameter is set.

        Raises:
            EntityNotFoundError: If there is no record with the ID.
            EntityLogicallyNotFoundError: If the record is soft-deleted.
        """
        ctx = self._context(Operation.UPDATE, params, ctx)
        params = dict(params or {})
        id = params.get("id", params.get(self.settings.id_field))
        await self._load_alive(id)
        return await self._update(ctx, params)

    async def remove(
        self, params: Mapping[str, Any] | None = None, ctx: Context | None = None
    ) -> Any:
        """Remove an entity by ID.

        Under soft-delete mode the deletion marker is set to the current
        timestamp (milliseconds) instead, and the update is returned.

        Raises:
            EntityNotFoundError: If there is no record with the ID.
            EntityLogicallyNotFoundError: If the record is already soft-deleted.
        """
        ctx = self._context(Operation.REMOVE, params, ctx)
        p = sanitize_params(params, Operation.REMOVE, self.settings)
        if not self.settings.soft_delete:
            return await self._remove(ctx, p)

        await self._load_alive(p.id)
        marker = {"id": p.id, self.settings.soft_delete_field: int(time.time() * 1000)}
        return await self._update(ctx, marker)

    # --- Methods ---

    def encode_id(self, id: Any) -> Any:
        """Encode an identity for output. Override for opaque IDs."""
        return id

    def decode_id(self, id: Any) -> Any:
        """Decode an identity received from a caller. Override for opaque IDs."""
        return id

    async def get_by_id(self, id: Any, decoding: bool = False) -> Any:
        """Get native record(s) by ID(s), decoding them first if requested."""
        if isinstance(id, list | tuple):
            ids = [self.decode_id(i) for i in id] if decoding else list(id)
            return await self.adapter.find_by_ids(ids)
        return await self.adapter.find_by_id(self.decode_id(id) if decoding else id)

    async def transform_documents(self, ctx: Context | None, params: QueryParams, docs: Any) -> Any:
        """Convert, encode, populate and filter fetched documents."""
        return await self.transformer.transform(ctx, params, docs)

    async def validate_entity(self, entity: Any) -> Any:
        """Validate one entity or a list of entities.

        Raises:
            ValidationError: If any entity is rejected.
        """
        if self._validator is None:
            return entity
        entities = entity if isinstance(entity, list) else [entity]
        await asyncio.gather(*(self._validator(item) for item in entities))
        return entity

    async def clear_cache(self) -> None:
        """Broadcast invalidation and purge this collection's cache keys."""
        await self.invalidator.invalidate()

    async def entity_changed(
        self, event: LifecycleEvent | str, json: Any, ctx: Context | None
    ) -> None:
        """Clear the cache, then call the lifecycle hook for the event."""
        await self.clear_cache()
        await self.dispatcher.dispatch(event, json, ctx)

    def is_deleted(self, doc: Mapping[str, Any]) -> bool:
        """Whether a native record carries an active soft-delete marker."""
        marker = doc.get(self.settings.soft_delete_field)
        return marker != self.settings.not_deleted_marker

    # --- Connection lifecycle ---

    async def connect(self) -> None:
        """Connect the adapter, then run the ``after_connected`` hook.

        Hook failures are logged, not raised.
        """
        await self.adapter.connect()
        hook = get_hook(self.hooks, "after_connected")
        if hook is not None:
            try:
                await call_hook(hook, self)
            except Exception:
                logger.exception("after_connected hook of '%s' failed", self.full_name)

    async def disconnect(self) -> None:
        disconnect = getattr(self.adapter, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    async def start(self) -> None:
        """Connect, retrying forever with a fixed delay between attempts."""
        retryer = tenacity.AsyncRetrying(
            wait=tenacity.wait_fixed(self.settings.reconnect_delay),
            retry=tenacity.retry_if_exception_type(Exception),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retryer:
            with attempt:
                try:
                    await self.connect()
                except Exception as e:
                    logger.error("Connection error in '%s': %s", self.full_name, e)
                    raise

    async def stop(self) -> None:
        await self.disconnect()

    # --- Internals ---

    async def _cached(
        self, operation: Operation, params: QueryParams, fetch: Callable[[], Awaitable[T]]
    ) -> T:
        if self.cacher is None or not self.settings.cache_enabled:
            return await fetch()

        key = self._cache_key(operation, params)
        cached = await self.cacher.get(key)
        if cached is not None:
            return cached
        result = await fetch()
        await self.cacher.set(key, result)
        return result

    def _cache_key(self, operation: Operation, params: QueryParams) -> str:
        selected = params.pick(CACHE_KEYS[operation])
        digest = json.dumps(selected, sort_keys=True, default=str, separators=(",", ":"))
        return f"{self.full_name}.{operation.value}:{digest}"

    async def _load_alive(self, id: Any) -> Any:
        """Load a record for a mutation, rejecting missing or soft-deleted ones."""
        doc = await self.get_by_id(id, decoding=True) if id is not None else None
        if not doc:
            raise EntityNotFoundError(id)
        if self.settings.soft_delete and self.is_deleted(doc):
            raise EntityLogicallyNotFoundError(id)
        return doc

    def _native_id(self, doc: Any) -> Any:
        obj = self.adapter.entity_to_object(doc)
        return self.adapter.after_retrieve_transform_id(obj, self.settings.id_field).get(
            self.settings.id_field
        )

    def _mark_not_deleted(self, entity: dict[str, Any]) -> dict[str, Any]:
        if self.settings.soft_delete:
            entity.setdefault(self.settings.soft_delete_field, self.settings.not_deleted_marker)
        return entity

    async def _find(self, ctx: Context, params: QueryParams) -> Any:
        docs = await self.adapter.find(params)
        return await self.transform_documents(ctx, params, docs)

    async def _count(self, params: QueryParams) -> int:
        return await self.adapter.count(params.copy(limit=None, offset=None))

    async def _list(self, ctx: Context, params: QueryParams) -> dict[str, Any]:
        count_params = params.copy(limit=None, offset=None)
        docs, total = await asyncio.gather(
            self.adapter.find(params),
            self.adapter.count(count_params),
        )
        rows = await self.transform_documents(ctx, params, docs)
        page_size = params.page_size or 0
        return {
            "rows": rows,
            "total": total,
            "page": params.page,
            "page_size": page_size,
            "total_pages": math.ceil(total / page_size) if page_size > 0 else 0,
        }

    async def _create(self, ctx: Context, entity: dict[str, Any]) -> Any:
        await self.validate_entity(entity)
        entity = self.adapter.before_save_transform_id(entity, self.settings.id_field)
        doc = await self.adapter.insert(self._mark_not_deleted(entity))
        json = await self.transform_documents(ctx, QueryParams(), doc)
        await self.entity_changed(LifecycleEvent.CREATED, json, ctx)
        return json

    async def _insert(self, ctx: Context, params: QueryParams) -> Any:
        id_field = self.settings.id_field
        if params.entities is not None:
            entities = await self.validate_entity([dict(e) for e in params.entities])
            if id_field != getattr(self.adapter, "native_id_field", None):
                entities = [self.adapter.before_save_transform_id(e, id_field) for e in entities]
            docs = await self.adapter.insert_many([self._mark_not_deleted(e) for e in entities])
        elif params.entity is not None:
            entity = await self.validate_entity(dict(params.entity))
            entity = self.adapter.before_save_transform_id(entity, id_field)
            docs = await self.adapter.insert(self._mark_not_deleted(entity))
        else:
            raise BadRequestError(
                "Invalid request! The 'params' must contain 'entity' or 'entities'!"
            )

        json = await self.transform_documents(ctx, params, docs)
        await self.entity_changed(LifecycleEvent.CREATED, json, ctx)
        return json

    async def _get(self, ctx: Context, params: QueryParams) -> Any:
        id = params.id
        docs = await self.get_by_id(id, decoding=True)
        if docs is None:
            raise EntityNotFoundError(id)

        if self.settings.soft_delete and not params.ignore_soft_delete:
            for doc in docs if isinstance(docs, list) else [docs]:
                if self.is_deleted(doc):
                    raise EntityLogicallyNotFoundError(id)

        json = await self.transform_documents(ctx, params, docs)
        if isinstance(json, list) and params.mapping:
            return {self._native_id(orig): item for orig, item in zip(docs, json, strict=True)}
        return json

    async def _update(self, ctx: Context, params: Mapping[str, Any]) -> Any:
        id = None
        sets: dict[str, Any] = {}
        for prop, value in params.items():
            if prop in ("id", self.settings.id_field):
                id = self.decode_id(value)
            else:
                sets[prop] = value

        doc = await self.adapter.update_by_id(id, {"$set": sets})
        if doc is None:
            raise EntityNotFoundError(id)
        json = await self.transform_documents(ctx, QueryParams(), doc)
        await self.entity_changed(LifecycleEvent.UPDATED, json, ctx)
        return json

    async def _remove(self, ctx: Context, params: QueryParams) -> Any:
        doc = await self.adapter.remove_by_id(self.decode_id(params.id))
        if doc is None:
            raise EntityNotFoundError(params.id)
        json = await self.transform_documents(ctx, params, doc)
        await self.entity_changed(LifecycleEvent.REMOVED, json, ctx)
        return json
