"""Entity services and their pipeline stages."""

from entitydb.service.invalidation import CacheInvalidator
from entitydb.service.lifecycle import LifecycleDispatcher, LifecycleEvent
from entitydb.service.service import EntityService
from entitydb.service.transform import DocumentTransformer
from entitydb.service.validation import build_validator

__all__ = [
    "EntityService",
    # Pipeline stages
    "DocumentTransformer",
    "CacheInvalidator",
    "LifecycleDispatcher",
    "LifecycleEvent",
    "build_validator",
]
