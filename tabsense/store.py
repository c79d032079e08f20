"""
Durable key-value state — persisted to data/state.json.

Only two keys live here: ``autoCleanEnabled`` and ``focusState``. Both may be
absent on first run; readers fall back to the caller's default.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

AUTO_CLEAN_KEY = "autoCleanEnabled"
FOCUS_STATE_KEY = "focusState"


class StateStore:
    """JSON-file backed store. Every ``set`` rewrites the whole file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._current: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        self._current = {}
        if not self.path.exists():
            return
        try:
            saved = json.loads(self.path.read_text())
        except (OSError, ValueError):
            logger.warning("State file %s is unreadable; starting from defaults", self.path)
            return
        if isinstance(saved, dict):
            self._current = saved

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._current.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._current[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._current, indent=2))
