"""Cache invalidation on mutation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from entitydb.broker.protocol import Broker, Cacher

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Purges cached reads of one entity collection.

    Broadcasts ``cache.clean.{namespace}`` for external cache listeners, then
    cleans every local cache key under ``{namespace}.*``. Both steps complete
    before ``invalidate`` returns.

    Args:
        namespace: Full name of the entity collection (e.g. ``"v2.posts"``).
        broker: Broker used for the broadcast, if any.
        cacher: Attached cache, if any.
    """

    def __init__(
        self,
        namespace: str,
        broker: Broker | None = None,
        cacher: Cacher | None = None,
    ) -> None:
        self.namespace = namespace
        self._broker = broker
        self._cacher = cacher

    @property
    def event_name(self) -> str:
        return f"cache.clean.{self.namespace}"

    @property
    def key_pattern(self) -> str:
        return f"{self.namespace}.*"

    async def invalidate(self) -> None:
        if self._broker is not None:
            await self._broker.broadcast(self.event_name)
        if self._cacher is not None:
            logger.debug("Cleaning cache keys '%s'", self.key_pattern)
            await self._cacher.clean(self.key_pattern)
