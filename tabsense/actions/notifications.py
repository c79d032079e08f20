"""
Notification Control — user-visible messages through the browser host and,
optionally, the OS notification centre.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys

from ..tabs.models import TabSourceError
from ..tabs.source import TabSource

logger = logging.getLogger(__name__)


class NotificationController:

    def __init__(self, source: TabSource, desktop: bool = False):
        self._source = source
        self.desktop = desktop

    async def notify(self, title: str, message: str) -> bool:
        """Show *message*; returns False if the browser host rejected it."""
        delivered = True
        try:
            await self._source.notify(title, message)
        except TabSourceError as e:
            logger.warning("Browser notification failed: %s", e)
            delivered = False

        if self.desktop:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.desktop_notify, title, message)
        return delivered

    def desktop_notify(self, title: str, message: str) -> bool:
        if sys.platform == "win32":
            return self._windows_toast(title, message)
        if sys.platform == "darwin":
            return self._macos_notify(title, message)
        return self._linux_notify(title, message)

    # ------------------------------------------------------------------
    # Platform implementations
    # ------------------------------------------------------------------

    def _windows_toast(self, title: str, message: str) -> bool:
        script = (
            "[reflection.assembly]::loadwithpartialname('System.Windows.Forms') | Out-Null; "
            "$n = New-Object System.Windows.Forms.NotifyIcon; "
            "$n.Icon = [System.Drawing.SystemIcons]::Information; $n.Visible = $true; "
            f"$n.ShowBalloonTip(5000, '{_ps_quote(title)}', '{_ps_quote(message)}', 'Info')"
        )
        return self._run(["powershell", "-Command", script])

    def _macos_notify(self, title: str, message: str) -> bool:
        script = f'display notification "{_as_quote(message)}" with title "{_as_quote(title)}"'
        return self._run(["osascript", "-e", script])

    def _linux_notify(self, title: str, message: str) -> bool:
        return self._run(["notify-send", title, message])

    def _run(self, cmd: list) -> bool:
        try:
            subprocess.run(cmd, check=True, capture_output=True, timeout=5)
            return True
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Desktop notification via %s failed: %s", cmd[0], e)
            return False


def _ps_quote(text: str) -> str:
    return text.replace("'", "''")


def _as_quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
