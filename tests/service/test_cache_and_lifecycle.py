"""Tests for read caching, invalidation and lifecycle hooks.

Critical Invariants:
- Every successful mutation invalidates the collection before its hook runs
- Invalidation broadcasts cache.clean.{full_name} and purges {full_name}.* keys
- Hooks receive the transformed entity and the request context
"""

import pytest

from entitydb import Context, EntityNotFoundError, EntitySettings, LifecycleEvent, MemoryCacher
from entitydb.service import CacheInvalidator, LifecycleDispatcher


@pytest.mark.asyncio
async def test_reads_are_cached_and_mutations_purge(broker, make_service):
    service = make_service(records=[{"_id": "1", "title": "a"}], broker=broker)

    assert await service.count() == 1
    assert any(key.startswith("posts.count:") for key in broker.cacher.keys())

    await service.adapter.insert({"_id": "2", "title": "b"})
    assert await service.count() == 1  # served from cache

    await service.create({"title": "c"})

    assert broker.cacher.keys() == []
    assert await service.count() == 3


@pytest.mark.asyncio
async def test_cache_key_depends_on_parameters(broker, make_service):
    service = make_service(records=[{"_id": "1", "lang": "en"}], broker=broker)

    assert await service.count({"query": {"lang": "en"}}) == 1
    assert await service.count({"query": {"lang": "de"}}) == 0
    assert len(broker.cacher.keys()) == 2


@pytest.mark.asyncio
async def test_cached_results_are_isolated_copies(broker, make_service):
    service = make_service(records=[{"_id": "1", "title": "a"}], broker=broker)

    first = await service.get({"id": "1"})
    first["title"] = "mutated"

    assert (await service.get({"id": "1"}))["title"] == "a"


@pytest.mark.asyncio
async def test_caching_can_be_disabled(broker, make_service):
    service = make_service(
        settings=EntitySettings(name="posts", cache_enabled=False), broker=broker
    )

    await service.find()

    assert broker.cacher.keys() == []


@pytest.mark.asyncio
async def test_other_collections_keep_their_cache(broker, make_service):
    posts = make_service(name="posts", broker=broker)
    users = make_service(name="users", broker=broker)
    await posts.count()
    await users.count()

    await posts.create({"title": "x"})

    assert [key.split(":")[0] for key in broker.cacher.keys()] == ["users.count"]


@pytest.mark.asyncio
async def test_invalidation_completes_before_hook(recording_broker, make_service):
    """Hooks observe a cache that no longer holds stale reads."""
    cacher = MemoryCacher()
    order = []

    async def entity_created(json, ctx):
        order.append(("hook", list(recording_broker.events), cacher.keys()))

    service = make_service(
        broker=recording_broker, cacher=cacher, hooks={"entity_created": entity_created}
    )
    await service.count()

    await service.create({"title": "x"})

    assert order == [("hook", ["cache.clean.posts"], [])]


@pytest.mark.asyncio
async def test_each_mutation_fires_matching_hook(make_service):
    calls = []

    class Hooks:
        async def entity_created(self, json, ctx):
            calls.append(("created", json["title"], ctx.action))

        def entity_updated(self, json, ctx):
            calls.append(("updated", json["title"], ctx.action))

        async def entity_removed(self, json, ctx):
            calls.append(("removed", json["title"], ctx.action))

    service = make_service(hooks=Hooks())
    created = await service.create({"title": "a"})
    await service.update({"id": created["_id"], "title": "b"})
    await service.remove({"id": created["_id"]})

    assert calls == [
        ("created", "a", "posts.create"),
        ("updated", "b", "posts.update"),
        ("removed", "b", "posts.remove"),
    ]


@pytest.mark.asyncio
async def test_hooks_see_caller_context(make_service):
    seen = []
    service = make_service(hooks={"entity_created": lambda json, ctx: seen.append(ctx)})
    ctx = Context(action="posts.create", meta={"user": "u1"})

    await service.create({"title": "a"}, ctx)

    assert seen == [ctx]


@pytest.mark.asyncio
async def test_failed_mutation_fires_no_hook(recording_broker, make_service):
    calls = []
    service = make_service(
        broker=recording_broker, hooks={"entity_updated": lambda *args: calls.append(args)}
    )

    with pytest.raises(EntityNotFoundError):
        await service.update({"id": "missing", "title": "x"})

    assert calls == []
    assert recording_broker.events == []


@pytest.mark.asyncio
async def test_cache_invalidator_without_ports_is_noop():
    invalidator = CacheInvalidator("posts")

    await invalidator.invalidate()

    assert invalidator.event_name == "cache.clean.posts"
    assert invalidator.key_pattern == "posts.*"


@pytest.mark.asyncio
async def test_versioned_namespace(recording_broker):
    cacher = MemoryCacher()
    await cacher.set("v2.posts.find:{}", [1])
    await cacher.set("posts.find:{}", [2])

    await CacheInvalidator("v2.posts", recording_broker, cacher).invalidate()

    assert recording_broker.events == ["cache.clean.v2.posts"]
    assert cacher.keys() == ["posts.find:{}"]


@pytest.mark.asyncio
async def test_dispatcher_ignores_missing_hooks():
    await LifecycleDispatcher(None).dispatch(LifecycleEvent.CREATED, {}, None)
    await LifecycleDispatcher(object()).dispatch("removed", {}, None)


def test_lifecycle_hook_names():
    assert [event.hook_name for event in LifecycleEvent] == [
        "entity_created",
        "entity_updated",
        "entity_removed",
    ]
