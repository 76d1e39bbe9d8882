"""Storage adapter protocol for swappable backends.

Every storage collaborator implements this contract. Entity services only
delegate to it; they never assume a concrete store.

Usage:
    adapter = MemoryAdapter()
    posts = EntityService(EntitySettings(name="posts"), adapter=adapter)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from entitydb.params import QueryParams


@runtime_checkable
class Adapter(Protocol):
    """Abstract storage interface. Implementations handle actual data.

    Attributes:
        native_id_field: Identity field the store manages natively. Bulk
            inserts skip the identity pre-save transform when the service's
            ``id_field`` equals it.
    """

    native_id_field: str

    async def connect(self) -> None:
        """Open the connection to the store."""
        ...

    async def disconnect(self) -> None:
        """Close the connection to the store."""
        ...

    async def find(self, params: QueryParams) -> list[Any]:
        """Find records by query, search, sort and pagination parameters."""
        ...

    async def count(self, params: QueryParams) -> int:
        """Count records matching query and search parameters."""
        ...

    async def find_by_id(self, id: Any) -> Any | None:
        """Get a record by identity."""
        ...

    async def find_by_ids(self, ids: Sequence[Any]) -> list[Any]:
        """Get records by identities. Missing identities are skipped."""
        ...

    async def insert(self, entity: dict[str, Any]) -> Any:
        """Insert a record and return the stored record."""
        ...

    async def insert_many(self, entities: Sequence[dict[str, Any]]) -> list[Any]:
        """Insert records and return the stored records."""
        ...

    async def update_by_id(self, id: Any, patch: dict[str, Any]) -> Any | None:
        """Apply an update patch (``{"$set": {...}}``). Returns None if no match."""
        ...

    async def remove_by_id(self, id: Any) -> Any | None:
        """Remove a record. Returns the removed record or None if no match."""
        ...

    def entity_to_object(self, entity: Any) -> dict[str, Any]:
        """Convert a native record into a plain, independently owned dict."""
        ...

    def before_save_transform_id(self, entity: dict[str, Any], id_field: str) -> dict[str, Any]:
        """Map the service identity field onto the native one before saving."""
        ...

    def after_retrieve_transform_id(self, entity: dict[str, Any], id_field: str) -> dict[str, Any]:
        """Map the native identity field onto the service one after retrieval."""
        ...
