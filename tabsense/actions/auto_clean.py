"""
Auto-Clean — periodic sweep that discards long-inactive tabs.

Pinned, focused and audible tabs are never discarded. Each discard is an
independent request: one failure is logged and the sweep carries on.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional

from ..classify.classifier import is_inactive
from ..store import AUTO_CLEAN_KEY, StateStore
from ..tabs.models import TabQuery, TabRecord, TabSourceError
from ..tabs.source import TabSource

logger = logging.getLogger(__name__)


class AutoCleanScheduler:

    def __init__(
        self,
        source: TabSource,
        store: StateStore,
        inactive_minutes: float = 20.0,
        clock: Callable[[], float] = time.time,
    ):
        self._source = source
        self._store = store
        self.inactive_minutes = inactive_minutes
        self._clock = clock

    # ------------------------------------------------------------------
    # Setting
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return bool(self._store.get(AUTO_CLEAN_KEY, False))

    def set_enabled(self, enabled: bool) -> bool:
        self._store.set(AUTO_CLEAN_KEY, bool(enabled))
        logger.info("Auto-clean %s", "enabled" if enabled else "disabled")
        return bool(enabled)

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def candidates(self, tabs: List[TabRecord], now: float) -> List[TabRecord]:
        return [
            t for t in tabs
            if not t.is_pinned
            and not t.is_audible
            and is_inactive(t, now, self.inactive_minutes)
        ]

    async def sweep(self, now: Optional[float] = None) -> List[int]:
        """Run one discard pass; returns the ids a discard was attempted for."""
        now = self._clock() if now is None else now
        tabs = await self._source.list_tabs(TabQuery.INACTIVE_NON_AUDIBLE)
        targets = self.candidates(tabs, now)
        if not targets:
            return []

        outcomes = await asyncio.gather(*(self._discard(t) for t in targets))
        logger.info(
            "Auto-clean sweep: %d/%d tabs discarded", sum(outcomes), len(targets)
        )
        return [t.id for t in targets]

    async def tick(self) -> List[int]:
        """Called on every periodic alarm; no-op while the setting is off."""
        if not self.enabled:
            return []
        return await self.sweep()

    async def _discard(self, tab: TabRecord) -> bool:
        try:
            await self._source.discard_tab(tab.id)
            return True
        except TabSourceError as e:
            logger.warning("Failed to discard tab %s: %s", tab.id, e)
            return False
