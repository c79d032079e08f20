"""
Tab records, query filters and change events exchanged with the Snapshot Source.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional


class TabSourceError(Exception):
    """A single request to the tab host failed."""


class TabNotFoundError(TabSourceError):
    def __init__(self, tab_id: int):
        super().__init__(f"No tab with id {tab_id}")
        self.tab_id = tab_id


@dataclass(frozen=True)
class TabRecord:
    id: int
    url: Optional[str] = None
    title: str = ""
    favicon_url: Optional[str] = None
    last_active_at: Optional[float] = None   # unix seconds; None if never recorded
    is_active: bool = False
    is_audible: bool = False
    is_pinned: bool = False
    window_id: int = 0
    discarded: bool = False

    def with_changes(self, **changes: Any) -> "TabRecord":
        return replace(self, **changes)


class TabQuery(str, Enum):
    ALL = "all"
    CURRENT_WINDOW = "current_window"
    INACTIVE_NON_AUDIBLE = "inactive_non_audible"


class TabEventKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"


@dataclass
class TabEvent:
    kind: TabEventKind
    tab_id: int
    changes: Dict[str, Any] = field(default_factory=dict)

    @property
    def url_changed(self) -> bool:
        return "url" in self.changes

    @property
    def is_navigation_completed(self) -> bool:
        """An update that leaves the tab sitting on a (possibly new) loaded page."""
        if self.kind != TabEventKind.UPDATED:
            return False
        return self.url_changed or self.changes.get("status") == "complete"
