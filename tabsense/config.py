"""
Central configuration for the TabSense engine.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"


def _default_heavy_sites() -> List[str]:
    return [
        "youtube.com",
        "twitch.tv",
        "netflix.com",
        "figma.com",
        "meet.google.com",
        "zoom.us",
    ]


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8766
    log_level: str = "INFO"

    # Storage
    data_dir: Path = field(default_factory=lambda: _ROOT / "data")
    state_file: str = "state.json"

    # Classification
    ui_inactive_minutes: float = 30.0        # popup "inactive" list
    sweep_inactive_minutes: float = 20.0     # background auto-clean
    heavy_sites: List[str] = field(default_factory=_default_heavy_sites)

    # Auto-clean
    auto_clean_interval_minutes: float = 5.0

    # Focus sessions
    block_page_url: str = "chrome-extension://tabsense/blocked.html"
    internal_schemes: List[str] = field(
        default_factory=lambda: ["chrome", "chrome-extension", "about"]
    )
    desktop_notifications: bool = False

    # Extension bridge
    command_buffer_size: int = 500           # unpolled commands kept in the outbox

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def state_path(self) -> Path:
        return self.data_dir / self.state_file

    @classmethod
    def load(cls) -> "Config":
        cfg = cls()
        if _CONFIG_FILE.exists():
            overrides = json.loads(_CONFIG_FILE.read_text())
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (TABSENSE_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"TABSENSE_{k.upper()}"
            if env_key in os.environ:
                setattr(cfg, k, _coerce(getattr(cfg, k), os.environ[env_key]))
        cfg.data_dir = Path(cfg.data_dir)
        cfg.data_dir.mkdir(parents=True, exist_ok=True)
        return cfg


def _coerce(current, raw: str):
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, list):
        return [part.strip() for part in raw.split(",") if part.strip()]
    return type(current)(raw)


# Module-level singleton
config = Config.load()
