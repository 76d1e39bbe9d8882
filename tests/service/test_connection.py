"""Tests for the connection lifecycle (connect, retry, disconnect)."""

import logging

import pytest

from entitydb import EntitySettings, MemoryAdapter


class FlakyAdapter(MemoryAdapter):
    """Adapter failing the first ``failures`` connection attempts."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def connect(self):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError(f"attempt {self.attempts} refused")
        await super().connect()


@pytest.fixture
def fast_settings():
    return EntitySettings(name="posts", reconnect_delay=0)


@pytest.mark.asyncio
async def test_start_retries_until_connected(make_service, fast_settings, caplog):
    adapter = FlakyAdapter(failures=2)
    service = make_service(adapter=adapter, settings=fast_settings)

    with caplog.at_level(logging.WARNING, logger="entitydb"):
        await service.start()

    assert adapter.attempts == 3
    assert adapter.connected
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 2
    assert "attempt 1 refused" in errors[0].getMessage()


@pytest.mark.asyncio
async def test_after_connected_hook_receives_service(make_service):
    seen = []

    async def after_connected(service):
        seen.append(service)

    service = make_service(hooks={"after_connected": after_connected})

    await service.start()

    assert seen == [service]


@pytest.mark.asyncio
async def test_after_connected_failure_is_logged_not_raised(make_service, caplog):
    def after_connected(service):
        raise RuntimeError("seed failed")

    service = make_service(hooks={"after_connected": after_connected})

    with caplog.at_level(logging.ERROR, logger="entitydb"):
        await service.connect()

    assert service.adapter.connected
    assert any("after_connected" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_stop_disconnects(make_service):
    service = make_service()
    await service.start()

    await service.stop()

    assert not service.adapter.connected
