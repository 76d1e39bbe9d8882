"""Broker and cache ports with local in-process implementations."""

from entitydb.broker.cacher import MemoryCacher
from entitydb.broker.context import Context
from entitydb.broker.local import LocalBroker
from entitydb.broker.protocol import Broker, Cacher

__all__ = [
    # Protocols
    "Broker",
    "Cacher",
    # Implementations
    "LocalBroker",
    "MemoryCacher",
    # Context
    "Context",
]
