"""Storage adapters."""

from entitydb.storage.memory import MemoryAdapter
from entitydb.storage.protocol import Adapter

__all__ = [
    "Adapter",
    "MemoryAdapter",
]
