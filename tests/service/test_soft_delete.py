"""Tests for soft-delete mode.

Critical Invariants:
- remove sets a timestamp marker instead of deleting
- list hides deleted records unless ignore_soft_delete is set
- get/update/remove of a deleted record raise EntityLogicallyNotFoundError
- Population bypasses soft-delete filtering
"""

import time

import pytest

from entitydb import (
    EntityLogicallyNotFoundError,
    EntityNotFoundError,
    EntityService,
    EntitySettings,
    LocalBroker,
    MemoryAdapter,
)


@pytest.fixture
def soft_settings():
    return EntitySettings(name="posts", soft_delete=True)


@pytest.fixture
def service(make_service, soft_settings):
    return make_service(settings=soft_settings)


@pytest.mark.asyncio
async def test_created_records_carry_not_deleted_marker(service):
    created = await service.create({"title": "a"})
    inserted = await service.insert({"entities": [{"title": "b"}]})

    assert created["is_deleted"] == "-1"
    assert inserted[0]["is_deleted"] == "-1"


@pytest.mark.asyncio
async def test_remove_marks_record_deleted(service):
    created = await service.create({"title": "a"})
    before = int(time.time() * 1000)

    removed = await service.remove({"id": created["_id"]})

    assert removed["_id"] == created["_id"]
    assert removed["is_deleted"] >= before
    assert await service.count() == 1


@pytest.mark.asyncio
async def test_list_hides_deleted_records(service):
    kept = await service.create({"title": "kept"})
    gone = await service.create({"title": "gone"})
    await service.remove({"id": gone["_id"]})

    page = await service.list()
    everything = await service.list({"ignoreSoftDelete": "true"})

    assert [row["_id"] for row in page["rows"]] == [kept["_id"]]
    assert page["total"] == 1
    assert everything["total"] == 2


@pytest.mark.asyncio
async def test_list_keeps_caller_query(service):
    await service.create({"title": "a", "lang": "en"})
    await service.create({"title": "b", "lang": "de"})

    page = await service.list({"query": {"lang": "de"}})

    assert [row["title"] for row in page["rows"]] == ["b"]


@pytest.mark.asyncio
async def test_deleted_record_is_logically_not_found(service):
    created = await service.create({"title": "a"})
    await service.remove({"id": created["_id"]})

    with pytest.raises(EntityLogicallyNotFoundError) as exc_info:
        await service.get({"id": created["_id"]})
    assert exc_info.value.id == created["_id"]
    assert exc_info.value.status == 404

    with pytest.raises(EntityLogicallyNotFoundError):
        await service.update({"id": created["_id"], "title": "b"})
    with pytest.raises(EntityLogicallyNotFoundError):
        await service.remove({"id": created["_id"]})


@pytest.mark.asyncio
async def test_get_can_ignore_soft_delete(service):
    created = await service.create({"title": "a"})
    await service.remove({"id": created["_id"]})

    doc = await service.get({"id": created["_id"], "ignore_soft_delete": True})

    assert doc["title"] == "a"


@pytest.mark.asyncio
async def test_remove_missing_record_still_not_found(service):
    with pytest.raises(EntityNotFoundError):
        await service.remove({"id": "nope"})


@pytest.mark.asyncio
async def test_soft_remove_dispatches_updated_hook(make_service, soft_settings):
    events = []
    hooks = {
        "entity_updated": lambda json, ctx: events.append("updated"),
        "entity_removed": lambda json, ctx: events.append("removed"),
    }
    service = make_service(settings=soft_settings, hooks=hooks)
    created = await service.create({"title": "a"})

    await service.remove({"id": created["_id"]})

    assert events == ["updated"]


@pytest.mark.asyncio
async def test_population_resolves_deleted_relations():
    """A deleted author still populates into existing posts.

    Why: relation lookups pass ignore_soft_delete so historic references
    keep resolving.
    """
    broker = LocalBroker()
    users = EntityService(
        EntitySettings(name="users", soft_delete=True),
        adapter=MemoryAdapter([{"_id": "u1", "name": "Ada", "is_deleted": "-1"}]),
        broker=broker,
    )
    posts = EntityService(
        EntitySettings(name="posts"),
        adapter=MemoryAdapter([{"_id": "p1", "author": "u1"}]),
        broker=broker,
        populates={"author": "users.get"},
    )
    broker.register(users)
    broker.register(posts)
    await users.remove({"id": "u1"})

    post = await broker.call("posts.get", {"id": "p1", "populate": "author"})

    assert post["author"]["name"] == "Ada"
