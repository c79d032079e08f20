"""
Snapshot Source — the engine's view of the host browser's tab primitives.

Every mutation is an individual, independently fallible request. Callers must
expect TabSourceError on any of them.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Tuple

from .models import TabEvent, TabQuery, TabRecord, TabSourceError

logger = logging.getLogger(__name__)

TabListener = Callable[[TabEvent], None]


class TabSource(ABC):

    @abstractmethod
    async def list_tabs(self, query: TabQuery = TabQuery.ALL) -> List[TabRecord]:
        ...

    @abstractmethod
    async def get_tab(self, tab_id: int) -> Optional[TabRecord]:
        ...

    @abstractmethod
    async def discard_tab(self, tab_id: int) -> None:
        ...

    @abstractmethod
    async def close_tab(self, tab_id: int) -> None:
        ...

    async def close_tabs(self, tab_ids: Iterable[int]) -> Tuple[List[int], List[int]]:
        """
        Close every tab in its own request. A failed close is logged and
        skipped. Returns (closed, failed).
        """
        tab_ids = list(tab_ids)
        results = await asyncio.gather(
            *(self.close_tab(t) for t in tab_ids), return_exceptions=True
        )
        closed: List[int] = []
        failed: List[int] = []
        for tab_id, outcome in zip(tab_ids, results):
            if isinstance(outcome, TabSourceError):
                logger.warning("Failed to close tab %s: %s", tab_id, outcome)
                failed.append(tab_id)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                closed.append(tab_id)
        return closed, failed

    @abstractmethod
    async def navigate_tab(self, tab_id: int, url: str) -> None:
        ...

    @abstractmethod
    async def group_tabs(self, tab_ids: List[int]) -> int:
        """Create a visual group from *tab_ids* and return its group id."""

    @abstractmethod
    async def set_group_title(self, group_id: int, title: str) -> None:
        ...

    @abstractmethod
    async def notify(self, title: str, message: str) -> None:
        ...

    @abstractmethod
    def subscribe(self, listener: TabListener) -> None:
        """Register a callback(event) for created/updated/removed notifications."""
