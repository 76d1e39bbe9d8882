"""In-process broker implementation.

Routes named operation calls to registered services and delivers broadcast
events to glob-matched listeners. Suitable for single-process use and testing.

Usage:
    broker = LocalBroker(cacher=MemoryCacher())
    broker.register(users)
    broker.register(posts)
    await broker.start()

    page = await broker.call("posts.list", {"populate": "author"})
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, Any

from entitydb.broker.context import Context
from entitydb.errors import ServiceNotFoundError

if TYPE_CHECKING:
    from entitydb.broker.protocol import Cacher
    from entitydb.service.service import EntityService

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Mapping[str, Any], Context], Awaitable[Any]]
"""Signature: (params, ctx) -> awaitable result"""

EventListener = Callable[[str, Any], Any]
"""Signature: (event_name, payload) -> None or awaitable"""


class LocalBroker:
    """Simple in-memory broker.

    Args:
        cacher: Optional cacher shared by registered services.
    """

    def __init__(self, cacher: Cacher | None = None) -> None:
        self.cacher = cacher
        self._actions: dict[str, ActionHandler] = {}
        self._listeners: list[tuple[str, EventListener]] = []
        self._services: list[EntityService] = []

    def add_action(self, name: str, handler: ActionHandler) -> None:
        """Register a handler under a fully qualified action name."""
        self._actions[name] = handler

    def has_action(self, name: str) -> bool:
        return name in self._actions

    def register(self, service: EntityService) -> None:
        """Expose every operation of a service as ``{full_name}.{operation}``."""
        for name, handler in service.actions().items():
            self.add_action(name, handler)
        self._services.append(service)

    def on(self, pattern: str, listener: EventListener) -> None:
        """Subscribe a listener to events matching a glob pattern."""
        self._listeners.append((pattern, listener))

    async def call(
        self,
        action: str,
        params: Mapping[str, Any] | None = None,
        ctx: Context | None = None,
    ) -> Any:
        """Invoke a registered action.

        Raises:
            ServiceNotFoundError: If no handler is registered for ``action``.
        """
        handler = self._actions.get(action)
        if handler is None:
            raise ServiceNotFoundError(action)

        if ctx is None:
            child = Context(action=action, params=dict(params or {}), broker=self)
        else:
            child = ctx.child(action, params)
        return await handler(params or {}, child)

    async def broadcast(self, event: str, payload: Any = None) -> None:
        """Deliver an event to all matching listeners concurrently."""
        pending = []
        for pattern, listener in self._listeners:
            if fnmatchcase(event, pattern):
                result = listener(event, payload)
                if inspect.isawaitable(result):
                    pending.append(result)
        logger.debug("Broadcast '%s' to %d async listener(s)", event, len(pending))
        if pending:
            await asyncio.gather(*pending)

    async def start(self) -> None:
        """Start (connect) every registered service."""
        await asyncio.gather(*(service.start() for service in self._services))

    async def stop(self) -> None:
        """Stop (disconnect) every registered service."""
        await asyncio.gather(*(service.stop() for service in self._services))
