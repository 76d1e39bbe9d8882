"""Protocols for the remote-call and cache ports.

Entity services never reach for global state: the broker (named operation
calls and event broadcast) and the cacher are passed in at construction.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from entitydb.broker.context import Context


@runtime_checkable
class Broker(Protocol):
    """Invokes named operations and broadcasts events.

    Usage:
        users = await broker.call("users.get", {"id": ["1", "2"], "mapping": True})
        await broker.broadcast("cache.clean.posts")
    """

    async def call(
        self,
        action: str,
        params: Mapping[str, Any] | None = None,
        ctx: Context | None = None,
    ) -> Any:
        """Invoke a named operation and return its result.

        Args:
            action: Fully qualified action name, e.g. ``"users.get"``.
            params: Operation parameters.
            ctx: Parent request context, if any.
        """
        ...

    async def broadcast(self, event: str, payload: Any = None) -> None:
        """Deliver an event to every interested listener."""
        ...


@runtime_checkable
class Cacher(Protocol):
    """Minimal async cache interface with pattern-based purge."""

    async def get(self, key: str) -> Any | None:
        """Return the cached value or None."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a value."""
        ...

    async def clean(self, pattern: str = "*") -> None:
        """Remove every key matching a glob pattern (e.g. ``"posts.*"``)."""
        ...
