"""Shared test fixtures."""

import sys

import pytest

# Ensure src is in path
sys.path.insert(0, "src")

from entitydb import EntityService, EntitySettings, LocalBroker, MemoryAdapter, MemoryCacher


class RecordingBroker:
    """Broker double that records calls and broadcasts.

    ``responses`` maps action name to the value (or callable) returned.
    """

    def __init__(self, responses=None, cacher=None):
        self.responses = responses or {}
        self.calls = []
        self.events = []
        self.cacher = cacher

    async def call(self, action, params=None, ctx=None):
        self.calls.append((action, dict(params or {})))
        response = self.responses.get(action)
        if callable(response):
            return response(params)
        return response

    async def broadcast(self, event, payload=None):
        self.events.append(event)


@pytest.fixture
def recording_broker():
    return RecordingBroker()


@pytest.fixture
def broker():
    """Local broker with an in-memory cacher."""
    return LocalBroker(cacher=MemoryCacher())


@pytest.fixture
def settings():
    return EntitySettings(name="posts")


@pytest.fixture
def make_service():
    """Factory for services over a fresh in-memory adapter."""

    def factory(name="posts", records=None, **kwargs):
        kwargs.setdefault("adapter", MemoryAdapter(records))
        settings = kwargs.pop("settings", None) or EntitySettings(name=name)
        return EntityService(settings, **kwargs)

    return factory
