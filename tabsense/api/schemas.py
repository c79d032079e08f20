"""
Pydantic schemas for the FastAPI local API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..tabs.models import TabRecord

# ── Tabs ───────────────────────────────────────────────────────────────────

class TabIn(BaseModel):
    id: int
    url: Optional[str] = None
    title: str = ""
    favicon_url: Optional[str] = None
    last_active_at: Optional[float] = Field(None, description="Unix seconds of last activation")
    is_active: bool = False
    is_audible: bool = False
    is_pinned: bool = False
    window_id: int = 0
    discarded: bool = False

    def to_record(self) -> TabRecord:
        return TabRecord(**self.model_dump())


class TabOut(TabIn):
    @classmethod
    def from_record(cls, tab: TabRecord) -> "TabOut":
        return cls(**tab.__dict__)


class SnapshotIn(BaseModel):
    tabs: List[TabIn]
    current_window_id: Optional[int] = None


class TabEventIn(BaseModel):
    kind: str = Field(..., description="created | updated | removed")
    tab_id: int
    changes: Dict[str, Any] = Field(default_factory=dict)
    tab: Optional[TabIn] = Field(None, description="Full record for created events")


class ClassificationOut(BaseModel):
    inactive: List[TabOut]
    duplicate: List[TabOut]
    heavy: List[TabOut]
    total: int


class HealthOut(BaseModel):
    score: int = Field(..., ge=0, le=100)
    rank: str
    penalties: List[str]


class CloseTabsIn(BaseModel):
    tab_ids: List[int]


class CloseTabsOut(BaseModel):
    closed: List[int]
    failed: List[int]


class GroupingOut(BaseModel):
    groups: Dict[str, int]


# ── Focus Session ──────────────────────────────────────────────────────────

class FocusStartRequest(BaseModel):
    duration_minutes: float = Field(25, gt=0, allow_inf_nan=False)
    allowlist: List[str] = Field(default_factory=list)


class FocusStatusOut(BaseModel):
    active: bool
    end_at: Optional[float]
    remaining_seconds: float
    allowlist: List[str]


# ── Settings ───────────────────────────────────────────────────────────────

class AutoCleanIn(BaseModel):
    enabled: bool


class AutoCleanOut(BaseModel):
    enabled: bool
    interval_minutes: float
    inactive_minutes: float
