"""Entity lifecycle events and hook dispatch.

Hooks are looked up by name on a hooks object (or mapping):

    class PostHooks:
        async def entity_created(self, json, ctx): ...
        def entity_removed(self, json, ctx): ...

Missing hooks are a no-op. Sync and async hooks are both supported.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from entitydb.broker.context import Context


class LifecycleEvent(Enum):
    """Entity lifecycle event types."""

    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"

    @property
    def hook_name(self) -> str:
        """Name of the hook handling this event, e.g. ``entity_created``."""
        return f"entity_{self.value}"


def get_hook(hooks: Any, name: str) -> Callable[..., Any] | None:
    """Look up a hook by name on an object or mapping."""
    if hooks is None:
        return None
    hook = hooks.get(name) if isinstance(hooks, Mapping) else getattr(hooks, name, None)
    return hook if callable(hook) else None


async def call_hook(hook: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async hook and return its (awaited) result."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class LifecycleDispatcher:
    """Invokes ``entity_created`` / ``entity_updated`` / ``entity_removed`` hooks.

    Args:
        hooks: Object or mapping providing hooks, or None.
    """

    def __init__(self, hooks: Any = None) -> None:
        self._hooks = hooks

    async def dispatch(
        self,
        event: LifecycleEvent | str,
        json: Any,
        ctx: Context | None,
    ) -> None:
        """Run the hook for an event with the transformed entity and context."""
        hook = get_hook(self._hooks, LifecycleEvent(event).hook_name)
        if hook is not None:
            await call_hook(hook, json, ctx)
