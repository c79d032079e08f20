"""
/tabs — extension feed (snapshots, events, command polling) plus
classification, health and bulk tab operations for the popup.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...api.schemas import (
    ClassificationOut,
    CloseTabsIn,
    CloseTabsOut,
    GroupingOut,
    HealthOut,
    SnapshotIn,
    TabEventIn,
    TabOut,
)
from ...tabs.models import TabEvent, TabEventKind, TabNotFoundError, TabQuery

router = APIRouter(prefix="/tabs", tags=["tabs"])


def _get_mirror(request: Request):
    return request.app.state.mirror


def _get_coordinator(request: Request):
    return request.app.state.coordinator


# ── Extension feed ──────────────────────────────────────────────────────────

@router.post("/snapshot", status_code=status.HTTP_202_ACCEPTED)
def post_snapshot(snapshot: SnapshotIn, mirror=Depends(_get_mirror)):
    """Replace the mirror with a full tab list from the extension."""
    mirror.replace_all([t.to_record() for t in snapshot.tabs], snapshot.current_window_id)
    return {"status": "accepted", "count": len(snapshot.tabs)}


@router.post("/events", status_code=status.HTTP_202_ACCEPTED)
def post_event(event: TabEventIn, mirror=Depends(_get_mirror)):
    try:
        kind = TabEventKind(event.kind)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown event kind: {event.kind!r}")
    record = event.tab.to_record() if event.tab is not None else None
    mirror.apply_event(TabEvent(kind=kind, tab_id=event.tab_id, changes=event.changes), record)
    return {"status": "accepted"}


@router.get("/commands")
def get_commands(mirror=Depends(_get_mirror)):
    """Drain queued tab commands for the extension to execute."""
    return {"commands": mirror.drain_commands()}


# ── Queries ─────────────────────────────────────────────────────────────────

@router.get("", response_model=List[TabOut])
async def list_tabs(mirror=Depends(_get_mirror)):
    return [TabOut.from_record(t) for t in await mirror.list_tabs(TabQuery.ALL)]


@router.get("/classification", response_model=ClassificationOut)
async def get_classification(
    mirror=Depends(_get_mirror),
    coordinator=Depends(_get_coordinator),
):
    result = await coordinator.classify()
    total = len(await mirror.list_tabs(TabQuery.ALL))
    return ClassificationOut(
        inactive=[TabOut.from_record(t) for t in result.inactive],
        duplicate=[TabOut.from_record(t) for t in result.duplicate],
        heavy=[TabOut.from_record(t) for t in result.heavy],
        total=total,
    )


@router.get("/health", response_model=HealthOut)
async def get_health(coordinator=Depends(_get_coordinator)):
    h = await coordinator.health()
    return HealthOut(score=h.score, rank=h.rank, penalties=h.penalties)


# ── Operations ──────────────────────────────────────────────────────────────

@router.delete("/{tab_id}")
async def close_tab(tab_id: int, coordinator=Depends(_get_coordinator)):
    try:
        await coordinator.close_tab(tab_id)
    except TabNotFoundError:
        raise HTTPException(status_code=404, detail="Tab not found")
    return {"status": "closed"}


@router.post("/close", response_model=CloseTabsOut)
async def close_tabs(req: CloseTabsIn, coordinator=Depends(_get_coordinator)):
    closed, failed = await coordinator.close_tabs(req.tab_ids)
    return CloseTabsOut(closed=closed, failed=failed)


@router.post("/close-duplicates", response_model=CloseTabsOut)
async def close_duplicates(coordinator=Depends(_get_coordinator)):
    closed, failed = await coordinator.close_duplicates()
    return CloseTabsOut(closed=closed, failed=failed)


@router.post("/group-by-domain", response_model=GroupingOut)
async def group_by_domain(coordinator=Depends(_get_coordinator)):
    return GroupingOut(groups=await coordinator.group_by_domain())
