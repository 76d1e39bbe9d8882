"""Request context passed through operations, hooks and population handlers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from entitydb.broker.protocol import Broker


@dataclass
class Context:
    """Per-request context.

    Attributes:
        action: Fully qualified action being served (e.g. ``"posts.list"``).
        params: Raw parameters of the request.
        meta: Caller metadata, inherited by nested calls.
        broker: Broker used for nested calls, if any.
        parent: Context of the calling request, if any.
    """

    action: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)
    broker: Broker | None = None
    parent: Context | None = None

    @property
    def level(self) -> int:
        """Nesting depth (1 for a top-level request)."""
        return 1 if self.parent is None else self.parent.level + 1

    def child(self, action: str, params: Mapping[str, Any] | None = None) -> Context:
        """Create a nested context sharing this context's meta and broker."""
        return Context(
            action=action,
            params=dict(params or {}),
            meta=self.meta,
            broker=self.broker,
            parent=self,
        )

    async def call(self, action: str, params: Mapping[str, Any] | None = None) -> Any:
        """Invoke a named operation as a nested call of this request."""
        if self.broker is None:
            raise RuntimeError(f"Context has no broker to call '{action}'")
        return await self.broker.call(action, params, self)
