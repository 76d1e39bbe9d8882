import asyncio
import logging

import pydantic

from entitydb import (
    EntityLogicallyNotFoundError,
    EntityService,
    EntitySettings,
    LocalBroker,
    MemoryAdapter,
    MemoryCacher,
)


class Post(pydantic.BaseModel):
    title: str
    author: str
    votes: int = 0


class PostHooks:
    """Lifecycle hooks of the posts collection."""

    async def after_connected(self, service: EntityService) -> None:
        if await service.count() == 0:
            await service.create({"title": "Welcome", "author": "u1"})

    def entity_created(self, json, ctx) -> None:
        print(f"Post created: {json['title']}")

    def entity_updated(self, json, ctx) -> None:
        print(f"Post updated: {json['title']}")


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    broker = LocalBroker(cacher=MemoryCacher(ttl=30))

    users = EntityService(
        EntitySettings(name="users", fields=["_id", "name"]),
        adapter=MemoryAdapter([{"_id": "u1", "name": "Ada", "password": "secret"}]),
        broker=broker,
    )
    posts = EntityService(
        EntitySettings(name="posts", soft_delete=True, page_size=5),
        adapter=MemoryAdapter(),
        broker=broker,
        populates={"author": "users.get"},
        entity_validator=Post,
        hooks=PostHooks(),
    )
    broker.register(users)
    broker.register(posts)
    await broker.start()

    draft = await broker.call("posts.create", {"title": "Hello", "author": "u1"})
    await broker.call("posts.update", {"id": draft["_id"], "votes": 3})

    page = await broker.call("posts.list", {"populate": "author", "sort": "-votes"})
    print(f"{page['total']} posts on {page['total_pages']} page(s)")
    for row in page["rows"]:
        print(f"  {row['title']} by {row['author']['name']} ({row.get('votes', 0)} votes)")

    await broker.call("posts.remove", {"id": draft["_id"]})
    try:
        await broker.call("posts.get", {"id": draft["_id"]})
    except EntityLogicallyNotFoundError as e:
        print(f"Removed post is hidden: {e.asdict()}")

    await broker.stop()


if __name__ == "__main__":
    asyncio.run(main())
