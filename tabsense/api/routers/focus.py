"""
/focus — start, stop and poll the focus session.
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException, Request

from ...actions.focus_session import FocusSession, InvalidCommandError
from ...api.schemas import FocusStartRequest, FocusStatusOut

router = APIRouter(prefix="/focus", tags=["focus"])


def _get_coordinator(request: Request):
    return request.app.state.coordinator


def _status_out(state: FocusSession) -> FocusStatusOut:
    return FocusStatusOut(
        active=state.active,
        end_at=state.end_at,
        remaining_seconds=state.remaining_seconds(time.time()),
        allowlist=state.allowlist,
    )


@router.post("/start", response_model=FocusStatusOut)
async def start_focus(req: FocusStartRequest, coordinator=Depends(_get_coordinator)):
    """Start (or replace) the focus session and enforce it on every open tab."""
    try:
        state = await coordinator.start_session(req.duration_minutes, req.allowlist)
    except InvalidCommandError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _status_out(state)


@router.post("/stop", response_model=FocusStatusOut)
async def stop_focus(coordinator=Depends(_get_coordinator)):
    return _status_out(await coordinator.stop_session())


@router.get("", response_model=FocusStatusOut)
def get_focus(coordinator=Depends(_get_coordinator)):
    """Read-only; the popup polls this once a second for its countdown."""
    return _status_out(coordinator.status())
