"""Configuration settings using Pydantic Settings.

Provides typed configuration with environment variable support for entity
services.

Usage:
    from entitydb.config import EntitySettings

    # Load from environment variables (ENTITYDB_*)
    settings = EntitySettings(name="posts")

    # Or override with explicit values
    settings = EntitySettings(name="posts", id_field="id", max_limit=50)
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class EntitySettings(BaseSettings):  # type: ignore[misc]
    """Configuration for an entity service.

    Attributes:
        name: Name of the entity collection. Namespaces actions, cache keys
            and invalidation events.
        version: Optional version, prefixed to the name as ``v{version}.``.
        id_field: Name of the identity field.
        fields: Default field allow-list. ``None`` disables filtering.
        page_size: Default page size of the ``list`` operation.
        max_page_size: Maximum page size of ``list`` (non-positive: unlimited).
        max_limit: Maximum ``limit`` of ``find`` (non-positive: unlimited).
        soft_delete: Mark records as deleted instead of removing them.
        soft_delete_field: Field holding the deletion marker.
        not_deleted_marker: Marker value of records which are not deleted.
        reconnect_delay: Seconds to wait between connection attempts.
        cache_enabled: Cache read results when a cacher is attached.

    Environment Variables:
        ENTITYDB_NAME
        ENTITYDB_ID_FIELD
        ENTITYDB_FIELDS (space or comma separated)
        ENTITYDB_PAGE_SIZE
        ENTITYDB_MAX_PAGE_SIZE
        ENTITYDB_MAX_LIMIT
        ENTITYDB_SOFT_DELETE
        ENTITYDB_RECONNECT_DELAY
    """

    model_config = SettingsConfigDict(
        env_prefix="ENTITYDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name: str = ""
    version: str | int | None = None
    id_field: str = "_id"
    fields: Annotated[list[str] | None, NoDecode] = None
    page_size: int = 10
    max_page_size: int = 100
    max_limit: int = -1
    soft_delete: bool = False
    soft_delete_field: str = "is_deleted"
    not_deleted_marker: Any = "-1"
    reconnect_delay: float = 1.0
    cache_enabled: bool = True

    @field_validator("fields", mode="before")
    @classmethod
    def _split_fields(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.replace(",", " ").split()
        return value

    @property
    def full_name(self) -> str:
        """Name prefixed with the version, e.g. ``v2.posts``."""
        if self.version is None or self.version == "":
            return self.name
        prefix = f"v{self.version}" if isinstance(self.version, int) else self.version
        return f"{prefix}.{self.name}"
