"""
Tab Mirror — in-memory Snapshot Source fed by the browser extension.

The extension POSTs snapshots and change events; the mirror keeps the latest
record for every tab and queues outbound commands (navigate, discard, close,
group, notify) that the extension polls and executes. The actual tab mutation
happens in the browser; this module only records the intent.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional

from .models import TabEvent, TabEventKind, TabNotFoundError, TabQuery, TabRecord
from .source import TabListener, TabSource

logger = logging.getLogger(__name__)

# Fields the extension may report in an "updated" event
_UPDATABLE_FIELDS = {
    "url", "title", "favicon_url", "last_active_at",
    "is_active", "is_audible", "is_pinned", "window_id", "discarded",
}


class TabMirror(TabSource):

    def __init__(self, current_window_id: int = 0, max_commands: int = 500):
        self.current_window_id = current_window_id
        self._tabs: Dict[int, TabRecord] = {}
        # oldest commands fall off once the extension stops polling
        self._commands: Deque[Dict[str, Any]] = deque(maxlen=max_commands)
        self._listeners: List[TabListener] = []
        self._group_ids = itertools.count(1)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Inbound — fed by the extension
    # ------------------------------------------------------------------

    def replace_all(self, tabs: Iterable[TabRecord], current_window_id: Optional[int] = None) -> None:
        with self._lock:
            self._tabs = {t.id: t for t in tabs}
            if current_window_id is not None:
                self.current_window_id = current_window_id

    def apply_event(self, event: TabEvent, record: Optional[TabRecord] = None) -> None:
        """Fold a change event into the mirror, then fan it out to listeners."""
        with self._lock:
            if event.kind == TabEventKind.REMOVED:
                self._tabs.pop(event.tab_id, None)
            elif event.kind == TabEventKind.CREATED:
                self._tabs[event.tab_id] = record or TabRecord(id=event.tab_id)
            else:
                current = self._tabs.get(event.tab_id) or TabRecord(id=event.tab_id)
                changes = {k: v for k, v in event.changes.items() if k in _UPDATABLE_FIELDS}
                self._tabs[event.tab_id] = current.with_changes(**changes)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Tab listener failed for event %s on tab %s", event.kind, event.tab_id)

    def drain_commands(self) -> List[Dict[str, Any]]:
        with self._lock:
            pending = list(self._commands)
            self._commands.clear()
        return pending

    def pending_commands(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._commands)

    # ------------------------------------------------------------------
    # TabSource
    # ------------------------------------------------------------------

    async def list_tabs(self, query: TabQuery = TabQuery.ALL) -> List[TabRecord]:
        with self._lock:
            tabs = list(self._tabs.values())
        if query == TabQuery.CURRENT_WINDOW:
            return [t for t in tabs if t.window_id == self.current_window_id]
        if query == TabQuery.INACTIVE_NON_AUDIBLE:
            return [t for t in tabs if not t.is_active and not t.is_audible]
        return tabs

    async def get_tab(self, tab_id: int) -> Optional[TabRecord]:
        with self._lock:
            return self._tabs.get(tab_id)

    async def discard_tab(self, tab_id: int) -> None:
        with self._lock:
            tab = self._require(tab_id)
            self._tabs[tab_id] = tab.with_changes(discarded=True)
            self._queue_command({"op": "discard", "tab_id": tab_id})

    async def close_tab(self, tab_id: int) -> None:
        with self._lock:
            self._require(tab_id)
            del self._tabs[tab_id]
            self._queue_command({"op": "close", "tab_id": tab_id})

    async def navigate_tab(self, tab_id: int, url: str) -> None:
        with self._lock:
            tab = self._require(tab_id)
            # optimistic: the browser will confirm with an "updated" event
            self._tabs[tab_id] = tab.with_changes(url=url)
            self._queue_command({"op": "navigate", "tab_id": tab_id, "url": url})

    async def group_tabs(self, tab_ids: List[int]) -> int:
        with self._lock:
            for tab_id in tab_ids:
                self._require(tab_id)
            group_id = next(self._group_ids)
            self._queue_command({"op": "group", "tab_ids": list(tab_ids), "group_id": group_id})
        return group_id

    async def set_group_title(self, group_id: int, title: str) -> None:
        with self._lock:
            self._queue_command({"op": "title_group", "group_id": group_id, "title": title})

    async def notify(self, title: str, message: str) -> None:
        with self._lock:
            self._queue_command({
                "op": "notify", "title": title, "message": message, "timestamp": time.time(),
            })

    def subscribe(self, listener: TabListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require(self, tab_id: int) -> TabRecord:
        tab = self._tabs.get(tab_id)
        if tab is None:
            raise TabNotFoundError(tab_id)
        return tab

    def _queue_command(self, command: Dict[str, Any]) -> None:
        # caller holds self._lock
        if len(self._commands) == self._commands.maxlen:
            dropped = self._commands[0]
            logger.warning(
                "Command outbox full (%d); dropping oldest %s command",
                self._commands.maxlen, dropped.get("op"),
            )
        self._commands.append(command)
