"""
Shared pytest fixtures and configuration.
"""

import time

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tabsense.api.app import create_app
from tabsense.config import Config
from tabsense.coordinator import TabSenseCoordinator
from tabsense.store import StateStore
from tabsense.tabs.mirror import TabMirror

NOW = 1_700_000_000.0


class FakeClock:
    """Wall clock the tests can move by hand."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += minutes * 60.0


@pytest.fixture()
def cfg(tmp_path):
    return Config(data_dir=tmp_path)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def mirror():
    return TabMirror()


@pytest.fixture()
def store(tmp_path):
    return StateStore(tmp_path / "state.json")


@pytest_asyncio.fixture()
async def coordinator(mirror, store, cfg, clock):
    """Started coordinator on a hand-driven clock (timers still run on loop time)."""
    coord = TabSenseCoordinator(mirror, store, cfg, clock=clock)
    await coord.start()
    yield coord
    await coord.stop()


@pytest_asyncio.fixture()
async def live_coordinator(mirror, store, cfg):
    coord = TabSenseCoordinator(mirror, store, cfg, clock=time.time)
    await coord.start()
    yield coord
    await coord.stop()


@pytest.fixture()
def app(cfg):
    """Create a fresh app instance per test, storing state under tmp_path."""
    return create_app(cfg)


@pytest_asyncio.fixture()
async def client(app):
    """Async HTTP client wired directly to the ASGI app (no server needed)."""
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
