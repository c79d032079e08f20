"""
/settings — read and toggle the persisted auto-clean flag.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ...api.schemas import AutoCleanIn, AutoCleanOut

router = APIRouter(prefix="/settings", tags=["settings"])


def _get_coordinator(request: Request):
    return request.app.state.coordinator


def _out(coordinator, enabled: bool) -> AutoCleanOut:
    cfg = coordinator.config
    return AutoCleanOut(
        enabled=enabled,
        interval_minutes=cfg.auto_clean_interval_minutes,
        inactive_minutes=cfg.sweep_inactive_minutes,
    )


@router.get("/auto-clean", response_model=AutoCleanOut)
def read_auto_clean(coordinator=Depends(_get_coordinator)):
    return _out(coordinator, coordinator.get_auto_clean())


@router.put("/auto-clean", response_model=AutoCleanOut)
async def write_auto_clean(body: AutoCleanIn, coordinator=Depends(_get_coordinator)):
    """Persists immediately; the next periodic tick honours the new value."""
    return _out(coordinator, await coordinator.set_auto_clean(body.enabled))
