"""entitydb: uniform entity access over pluggable storage adapters.

Usage:
    from entitydb import EntityService, EntitySettings, LocalBroker, MemoryCacher

    broker = LocalBroker(cacher=MemoryCacher())
    users = EntityService(EntitySettings(name="users"), broker=broker)
    posts = EntityService(
        EntitySettings(name="posts", page_size=20),
        broker=broker,
        populates={"author": "users.get"},
    )
    broker.register(users)
    broker.register(posts)
    await broker.start()

    author = await users.create({"name": "Ada"})
    await posts.create({"title": "Hello", "author": author["_id"]})
    page = await posts.list({"populate": "author"})
"""

__version__ = "0.1.0"

# Broker and cache ports
from entitydb.broker import (
    Broker,
    Cacher,
    Context,
    LocalBroker,
    MemoryCacher,
)

# Configuration
from entitydb.config import EntitySettings

# Errors
from entitydb.errors import (
    BadRequestError,
    EntityDBError,
    EntityLogicallyNotFoundError,
    EntityNotFoundError,
    ServiceNotFoundError,
    ServiceSchemaError,
    ValidationError,
)

# Parameters
from entitydb.params import Operation, QueryParams, sanitize_params

# Population
from entitydb.populate import ActionRule, HandlerRule

# Services
from entitydb.service import EntityService, LifecycleEvent

# Storage
from entitydb.storage import Adapter, MemoryAdapter

__all__ = [
    # Version
    "__version__",
    # Services
    "EntityService",
    "EntitySettings",
    "LifecycleEvent",
    # Parameters
    "Operation",
    "QueryParams",
    "sanitize_params",
    # Population
    "ActionRule",
    "HandlerRule",
    # Storage
    "Adapter",
    "MemoryAdapter",
    # Broker
    "Broker",
    "Cacher",
    "Context",
    "LocalBroker",
    "MemoryCacher",
    # Errors
    "EntityDBError",
    "BadRequestError",
    "ValidationError",
    "EntityNotFoundError",
    "EntityLogicallyNotFoundError",
    "ServiceNotFoundError",
    "ServiceSchemaError",
]
