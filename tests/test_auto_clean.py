"""Tests for the auto-clean sweep and its persisted toggle."""

import pytest

from conftest import NOW
from tabsense.actions.auto_clean import AutoCleanScheduler
from tabsense.store import AUTO_CLEAN_KEY
from tabsense.tabs.mirror import TabMirror
from tabsense.tabs.models import TabRecord, TabSourceError


class FlakyMirror(TabMirror):
    """Mirror whose discard fails for a chosen set of tab ids."""

    def __init__(self, failing):
        super().__init__()
        self.failing = set(failing)
        self.attempts = []

    async def discard_tab(self, tab_id):
        self.attempts.append(tab_id)
        if tab_id in self.failing:
            raise TabSourceError("tab went away")
        await super().discard_tab(tab_id)


def _tab(id, minutes_ago, **kw) -> TabRecord:
    return TabRecord(id=id, url=f"https://site{id}.com", last_active_at=NOW - minutes_ago * 60, **kw)


def _discarded(mirror):
    return [c["tab_id"] for c in mirror.pending_commands() if c["op"] == "discard"]


@pytest.fixture()
def scheduler(mirror, store, clock):
    return AutoCleanScheduler(mirror, store, inactive_minutes=20, clock=clock)


class TestSweep:
    async def test_inactive_unpinned_tab_is_discarded(self, mirror, scheduler):
        mirror.replace_all([_tab(1, 21)])
        assert await scheduler.sweep() == [1]
        assert _discarded(mirror) == [1]

    async def test_pinned_tab_is_never_discarded(self, mirror, scheduler):
        mirror.replace_all([_tab(1, 21), _tab(2, 21, is_pinned=True), _tab(3, 500, is_pinned=True)])
        assert await scheduler.sweep() == [1]
        assert 2 not in _discarded(mirror)
        assert 3 not in _discarded(mirror)

    async def test_active_and_audible_tabs_are_skipped(self, mirror, scheduler):
        mirror.replace_all([_tab(1, 60, is_active=True), _tab(2, 60, is_audible=True)])
        assert await scheduler.sweep() == []
        assert mirror.pending_commands() == []

    async def test_recent_tab_is_kept(self, mirror, scheduler):
        mirror.replace_all([_tab(1, 19), TabRecord(id=2, url="https://x.com")])
        assert await scheduler.sweep() == []

    async def test_one_failure_does_not_abort_the_sweep(self, store, clock):
        flaky = FlakyMirror(failing={1})
        flaky.replace_all([_tab(1, 30), _tab(2, 30), _tab(3, 30)])
        sched = AutoCleanScheduler(flaky, store, inactive_minutes=20, clock=clock)
        assert await sched.sweep() == [1, 2, 3]
        assert sorted(flaky.attempts) == [1, 2, 3]
        assert sorted(_discarded(flaky)) == [2, 3]

    async def test_rerun_attempts_the_same_tabs(self, mirror, scheduler):
        mirror.replace_all([_tab(1, 25), _tab(2, 40), _tab(3, 5)])
        first = await scheduler.sweep()
        second = await scheduler.sweep()
        assert first == second == [1, 2]


class TestToggle:
    def test_defaults_to_off(self, scheduler):
        assert scheduler.enabled is False

    def test_toggle_is_persisted(self, scheduler, store):
        scheduler.set_enabled(True)
        assert store.get(AUTO_CLEAN_KEY) is True
        scheduler.set_enabled(False)
        assert store.get(AUTO_CLEAN_KEY) is False

    async def test_tick_does_nothing_while_disabled(self, mirror, scheduler):
        mirror.replace_all([_tab(1, 60)])
        assert await scheduler.tick() == []
        assert mirror.pending_commands() == []

    async def test_tick_sweeps_when_enabled(self, mirror, scheduler):
        mirror.replace_all([_tab(1, 60)])
        scheduler.set_enabled(True)
        assert await scheduler.tick() == [1]
