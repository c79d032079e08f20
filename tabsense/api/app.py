"""
FastAPI application — local TabSense engine API.
Runs on http://127.0.0.1:8766 by default.

Per-app objects (tab mirror, state store, coordinator, auto-clean alarm) live
on app.state so that each call to create_app() produces a fully independent
instance with no shared module-level globals. This makes test isolation
straightforward.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import Config, config as default_config
from ..coordinator import TabSenseCoordinator
from ..store import StateStore
from ..tabs.mirror import TabMirror

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Periodic auto-clean alarm
# ---------------------------------------------------------------------------

async def _auto_clean_loop(coordinator: TabSenseCoordinator, interval_minutes: float) -> None:
    while True:
        await asyncio.sleep(interval_minutes * 60.0)
        try:
            await coordinator.auto_clean_tick()
        except Exception:
            logger.exception("Auto-clean tick failed")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.config = cfg
        app.state.mirror = TabMirror(max_commands=cfg.command_buffer_size)
        app.state.store = StateStore(cfg.state_path)
        app.state.coordinator = TabSenseCoordinator(app.state.mirror, app.state.store, cfg)
        await app.state.coordinator.start()

        alarm = asyncio.create_task(
            _auto_clean_loop(app.state.coordinator, cfg.auto_clean_interval_minutes)
        )

        yield

        alarm.cancel()
        try:
            await alarm
        except asyncio.CancelledError:
            pass
        await app.state.coordinator.stop()

    app = FastAPI(
        title="TabSense",
        description="Local tab classification and focus-session engine",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "null"],
        allow_origin_regex=r"chrome-extension://.*",
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routers import focus, settings, tabs

    app.include_router(tabs.router)
    app.include_router(focus.router)
    app.include_router(settings.router)

    @app.get("/health")
    def health():
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
