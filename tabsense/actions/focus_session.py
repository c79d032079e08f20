"""
Focus Session — a timed interval during which navigation is restricted to an
allowlist of hostname substrings.

The controller is not thread-safe on its own; the coordinator serializes every
call through its single runner task.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from ..store import FOCUS_STATE_KEY, StateStore
from ..tabs.models import TabRecord, TabSourceError
from ..tabs.source import TabSource
from ..tabs.urls import host_contains_any, hostname, is_internal_url

logger = logging.getLogger(__name__)


class InvalidCommandError(ValueError):
    """A command was rejected before any state changed."""


@dataclass
class FocusSession:
    active: bool = False
    end_at: Optional[float] = None
    allowlist: List[str] = field(default_factory=list)

    def remaining_seconds(self, now: float) -> float:
        if not self.active or self.end_at is None:
            return 0.0
        return max(0.0, self.end_at - now)

    def is_expired(self, now: float) -> bool:
        return self.active and (self.end_at is None or self.end_at <= now)

    def copy(self) -> "FocusSession":
        return FocusSession(active=self.active, end_at=self.end_at, allowlist=list(self.allowlist))

    def to_dict(self) -> dict:
        return {"active": self.active, "endAt": self.end_at, "allowlist": list(self.allowlist)}

    @classmethod
    def from_dict(cls, raw) -> "FocusSession":
        if not isinstance(raw, dict):
            return cls()
        end_at = raw.get("endAt")
        try:
            end_at = float(end_at) if end_at is not None else None
        except (TypeError, ValueError):
            end_at = None
        allowlist = raw.get("allowlist") or []
        return cls(
            active=bool(raw.get("active", False)),
            end_at=end_at,
            allowlist=[str(x) for x in allowlist] if isinstance(allowlist, list) else [],
        )


class ExpiryTimer:
    """
    Single-shot timer over loop.call_later. Scheduling always cancels the
    previous handle, and every schedule bumps ``generation`` so a callback
    that was already queued when it got superseded can be recognised as stale.
    """

    def __init__(self, on_fire: Callable[[int], None]):
        self._on_fire = on_fire
        self._handle: Optional[asyncio.TimerHandle] = None
        self.generation = 0
        self.deadline: Optional[float] = None   # loop time

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay_s: float) -> int:
        self.cancel()
        self.generation += 1
        loop = asyncio.get_running_loop()
        generation = self.generation
        self._handle = loop.call_later(max(0.0, delay_s), self._fire, generation)
        self.deadline = loop.time() + max(0.0, delay_s)
        return generation

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self.deadline = None

    def _fire(self, generation: int) -> None:
        if generation != self.generation:
            return
        self._handle = None
        self.deadline = None
        self._on_fire(generation)


class FocusSessionController:

    def __init__(
        self,
        source: TabSource,
        store: StateStore,
        block_page_url: str,
        internal_schemes: Iterable[str],
        on_expire: Callable[[int], None],
        clock: Callable[[], float] = time.time,
    ):
        self._source = source
        self._store = store
        self.block_page_url = block_page_url
        self.internal_schemes = list(internal_schemes)
        self._clock = clock
        self.timer = ExpiryTimer(on_expire)
        self.session = FocusSession()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def restore(self) -> bool:
        """
        Load persisted state. Returns True if it had to be reconciled to Idle
        because ``endAt`` had already passed; no notification is sent for that.
        """
        self.session = FocusSession.from_dict(self._store.get(FOCUS_STATE_KEY))
        if not self.session.active:
            return False
        now = self._clock()
        if self.session.is_expired(now):
            logger.info("Restored focus session ended while offline; resetting to idle")
            self._clear()
            return True
        self.timer.schedule(self.session.remaining_seconds(now))
        logger.info("Resumed focus session, %.0fs remaining", self.session.remaining_seconds(now))
        return False

    def start(self, duration_minutes: float, allowlist: List[str]) -> FocusSession:
        if not math.isfinite(duration_minutes) or duration_minutes <= 0:
            raise InvalidCommandError("duration_minutes must be a positive, finite number")
        self.session = FocusSession(
            active=True,
            end_at=self._clock() + duration_minutes * 60.0,
            allowlist=list(allowlist),
        )
        self._persist()
        self.timer.schedule(duration_minutes * 60.0)
        logger.info("Focus session started for %s min, allowlist=%s", duration_minutes, allowlist)
        return self.session.copy()

    def stop(self) -> FocusSession:
        self._clear()
        logger.info("Focus session stopped")
        return self.session.copy()

    def expire(self, generation: int) -> bool:
        """Timer-fired end of session. Returns False for a stale or idle fire."""
        if generation != self.timer.generation or not self.session.active:
            return False
        self._clear()
        logger.info("Focus session expired")
        return True

    def status(self) -> FocusSession:
        return self.session.copy()

    # ------------------------------------------------------------------
    # Enforcement
    # ------------------------------------------------------------------

    def should_block(self, url: Optional[str], allowlist: Iterable[str]) -> bool:
        if not url:
            return False
        if url.startswith(self.block_page_url):
            return False
        if is_internal_url(url, self.internal_schemes):
            return False
        host = hostname(url)
        if host is None:
            return False
        return not host_contains_any(host, allowlist)

    async def enforce_tab(self, tab: TabRecord, generation: Optional[int] = None) -> bool:
        """
        Redirect *tab* to the block page if it is off the current allowlist.
        Returns True on redirect. A *generation* ties the call to the session
        that spawned it; once that session is stopped or replaced the call is a no-op.
        """
        # checked right before the request, with no await in between
        if not self.session.active:
            return False
        if generation is not None and generation != self.timer.generation:
            return False
        if not self.should_block(tab.url, self.session.allowlist):
            return False
        try:
            await self._source.navigate_tab(tab.id, self.block_page_url)
        except TabSourceError as e:
            logger.warning("Could not redirect tab %s: %s", tab.id, e)
            return False
        logger.info("Blocked tab %s (%s)", tab.id, hostname(tab.url))
        return True

    async def enforce_all(self, tabs: Iterable[TabRecord], generation: int) -> List[int]:
        """Enforce against every tab independently; returns ids that were redirected."""
        tabs = list(tabs)
        results = await asyncio.gather(
            *(self.enforce_tab(t, generation) for t in tabs), return_exceptions=True
        )
        redirected = []
        for tab, outcome in zip(tabs, results):
            if isinstance(outcome, BaseException):
                logger.warning("Enforcement failed on tab %s: %r", tab.id, outcome)
            elif outcome:
                redirected.append(tab.id)
        return redirected

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _clear(self) -> None:
        self.timer.cancel()
        self.session = FocusSession()
        self._persist()

    def _persist(self) -> None:
        self._store.set(FOCUS_STATE_KEY, self.session.to_dict())
