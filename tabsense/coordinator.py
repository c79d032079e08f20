"""
TabSense Coordinator — the single writer for focus-session and auto-clean state.

Three independent triggers share that state: explicit commands from the API,
navigation events from the tab host, and the periodic auto-clean alarm. Each
becomes a typed message on one asyncio.Queue, consumed in order by a single
runner task. Commands get their response through an asyncio.Future.

Reads (status, classification, health) bypass the queue. Batch work over many
tabs runs in spawned tasks so the runner only ever waits on one request.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .actions.auto_clean import AutoCleanScheduler
from .actions.focus_session import FocusSession, FocusSessionController, InvalidCommandError
from .actions.grouping import group_by_domain
from .actions.notifications import NotificationController
from .classify.classifier import ClassificationResult, TabClassifier
from .classify.health import HealthScore, health_score
from .config import Config
from .store import StateStore
from .tabs.models import TabEvent, TabQuery
from .tabs.source import TabSource
from .tabs.urls import normalize_allowlist

logger = logging.getLogger(__name__)

COMPLETION_TITLE = "Focus session complete"
COMPLETION_MESSAGE = "Your focus session has ended. Great work!"


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

@dataclass
class StartSession:
    duration_minutes: float
    allowlist: List[str]


@dataclass
class StopSession:
    pass


@dataclass
class ExpireSession:
    generation: int


@dataclass
class SetAutoClean:
    enabled: bool


@dataclass
class AutoCleanTick:
    pass


@dataclass
class NavigationCompleted:
    tab_id: int


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class TabSenseCoordinator:
    """
    Usage:
        coord = TabSenseCoordinator(mirror, StateStore(path), config)
        await coord.start()
        await coord.start_session(25, ["github.com"])
        status = coord.status()
        await coord.stop()
    """

    def __init__(
        self,
        source: TabSource,
        store: StateStore,
        cfg: Config,
        clock: Callable[[], float] = time.time,
        notifier: Optional[NotificationController] = None,
    ):
        self.source = source
        self.store = store
        self.config = cfg
        self._clock = clock
        self.classifier = TabClassifier(cfg.heavy_sites, cfg.ui_inactive_minutes)
        self.focus = FocusSessionController(
            source,
            store,
            block_page_url=cfg.block_page_url,
            internal_schemes=cfg.internal_schemes,
            on_expire=self._on_timer,
            clock=clock,
        )
        self.auto_clean = AutoCleanScheduler(source, store, cfg.sweep_inactive_minutes, clock)
        self.notifier = notifier or NotificationController(source, desktop=cfg.desktop_notifications)

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._runner: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        # reconcile persisted state before anything else can touch it
        self.focus.restore()
        self.source.subscribe(self._on_tab_event)
        self._runner = asyncio.create_task(self._run(), name="tabsense-coordinator")

    async def stop(self) -> None:
        self.focus.timer.cancel()
        if self._runner is not None:
            self._runner.cancel()
            with suppress(asyncio.CancelledError):
                await self._runner
            self._runner = None
        pending = list(self._background)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait until the queue is drained and every spawned batch has finished."""
        assert self._queue is not None, "coordinator not started"
        while True:
            await asyncio.sleep(0)   # let thread-posted messages land
            await self._queue.join()
            pending = [t for t in self._background if not t.done()]
            if not pending and self._queue.empty():
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Commands (serialized)
    # ------------------------------------------------------------------

    async def start_session(self, duration_minutes: float, allowlist: List[str]) -> FocusSession:
        if not math.isfinite(duration_minutes) or duration_minutes <= 0:
            raise InvalidCommandError("duration_minutes must be a positive, finite number")
        return await self._submit(StartSession(duration_minutes, normalize_allowlist(allowlist)))

    async def stop_session(self) -> FocusSession:
        return await self._submit(StopSession())

    async def set_auto_clean(self, enabled: bool) -> bool:
        return await self._submit(SetAutoClean(bool(enabled)))

    async def auto_clean_tick(self) -> bool:
        """Periodic alarm entry point; returns True if a sweep was started."""
        return await self._submit(AutoCleanTick())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def status(self) -> FocusSession:
        return self.focus.status()

    def get_auto_clean(self) -> bool:
        return self.auto_clean.enabled

    async def classify(self) -> ClassificationResult:
        tabs = await self.source.list_tabs(TabQuery.ALL)
        return self.classifier.classify(tabs, now=self._clock())

    async def health(self) -> HealthScore:
        tabs = await self.source.list_tabs(TabQuery.ALL)
        result = self.classifier.classify(tabs, now=self._clock())
        return health_score(len(tabs), len(result.duplicate))

    # ------------------------------------------------------------------
    # One-shot tab operations (no shared state)
    # ------------------------------------------------------------------

    async def group_by_domain(self) -> Dict[str, int]:
        return await group_by_domain(self.source)

    async def close_tab(self, tab_id: int) -> None:
        await self.source.close_tab(tab_id)

    async def close_tabs(self, tab_ids: List[int]) -> Tuple[List[int], List[int]]:
        """Close each tab independently. Returns (closed, failed)."""
        return await self.source.close_tabs(tab_ids)

    async def close_duplicates(self) -> Tuple[List[int], List[int]]:
        """Close every duplicate except the first-seen tab of each URL."""
        result = await self.classify()
        seen: Set[str] = set()
        extra: List[int] = []
        for tab in result.duplicate:
            if tab.url in seen:
                extra.append(tab.id)
            else:
                seen.add(tab.url)
        return await self.close_tabs(extra)

    # ------------------------------------------------------------------
    # Runner
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            message, future = await self._queue.get()
            try:
                result = await self._handle(message)
            except Exception as e:
                if future is not None and not future.done():
                    future.set_exception(e)
                else:
                    logger.exception("Unhandled error processing %s", type(message).__name__)
            else:
                if future is not None and not future.done():
                    future.set_result(result)
            finally:
                self._queue.task_done()

    async def _handle(self, message: Any) -> Any:
        if isinstance(message, StartSession):
            state = self.focus.start(message.duration_minutes, message.allowlist)
            self._spawn(self._enforce_open_tabs(self.focus.timer.generation))
            return state

        if isinstance(message, StopSession):
            return self.focus.stop()

        if isinstance(message, ExpireSession):
            if self.focus.expire(message.generation):
                self._spawn(self.notifier.notify(COMPLETION_TITLE, COMPLETION_MESSAGE))
            return self.focus.status()

        if isinstance(message, SetAutoClean):
            return self.auto_clean.set_enabled(message.enabled)

        if isinstance(message, AutoCleanTick):
            enabled = self.auto_clean.enabled
            self._spawn(self.auto_clean.tick())
            return enabled

        if isinstance(message, NavigationCompleted):
            if not self.focus.session.active:
                return False
            tab = await self.source.get_tab(message.tab_id)
            if tab is None:
                return False
            return await self.focus.enforce_tab(tab)

        raise TypeError(f"Unknown message {message!r}")

    async def _enforce_open_tabs(self, generation: int) -> List[int]:
        tabs = await self.source.list_tabs(TabQuery.ALL)
        return await self.focus.enforce_all(tabs, generation)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _submit(self, message: Any) -> Any:
        if self._queue is None:
            raise RuntimeError("coordinator not started")
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((message, future))
        return await future

    def _post(self, message: Any) -> None:
        """Fire-and-forget enqueue; safe from any thread."""
        if self._loop is None or self._queue is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._queue.put_nowait((message, None))
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, (message, None))

    def _on_timer(self, generation: int) -> None:
        self._post(ExpireSession(generation))

    def _on_tab_event(self, event: TabEvent) -> None:
        if event.is_navigation_completed:
            self._post(NavigationCompleted(event.tab_id))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._reap)
        return task

    def _reap(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed", exc_info=task.exception())
