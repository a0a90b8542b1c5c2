"""Foreground application lookup.

Resolves the name of the application owning the focused window on
Windows (user32 + psutil), macOS (System Events via osascript) and X11
desktops (xdotool + psutil).
"""

from __future__ import annotations

import asyncio
import logging
import sys

import psutil

from ambientctx.capture.base import CaptureError, WindowLookup

logger = logging.getLogger(__name__)

_OSASCRIPT_FRONTMOST = (
    'tell application "System Events" to get name of first application process '
    "whose frontmost is true"
)


class ForegroundWindowLookup(WindowLookup):
    """Looks up the foreground application for the current platform."""

    def __init__(self, timeout: float = 5.0, platform: str | None = None) -> None:
        self._timeout = timeout
        self._platform = platform or sys.platform

    async def active_app_name(self) -> str:
        if self._platform.startswith("win"):
            loop = asyncio.get_running_loop()
            pid = await loop.run_in_executor(None, self._windows_foreground_pid)
            return self._process_name(pid)
        if self._platform == "darwin":
            return await self._run("osascript", "-e", _OSASCRIPT_FRONTMOST)
        pid_text = await self._run("xdotool", "getactivewindow", "getwindowpid")
        try:
            pid = int(pid_text)
        except ValueError as e:
            raise CaptureError(f"xdotool returned an invalid pid: {pid_text!r}") from e
        return self._process_name(pid)

    @staticmethod
    def _windows_foreground_pid() -> int:
        """Synchronous user32 query (runs in thread pool)."""
        import ctypes
        from ctypes import wintypes

        user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        hwnd = user32.GetForegroundWindow()
        if not hwnd:
            raise CaptureError("No foreground window")
        pid = wintypes.DWORD()
        user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        return int(pid.value)

    @staticmethod
    def _process_name(pid: int) -> str:
        if pid <= 0:
            raise CaptureError(f"Invalid foreground process id {pid}")
        try:
            name = psutil.Process(pid).name()
        except (psutil.AccessDenied, psutil.NoSuchProcess, psutil.ZombieProcess) as e:
            raise CaptureError(f"Cannot inspect process {pid}: {e}") from e
        # Windows process names carry the executable suffix
        if name.lower().endswith(".exe"):
            name = name[:-4]
        return name

    async def _run(self, *command: str) -> str:
        """Run a helper command and return its stripped stdout."""
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CaptureError(f"{command[0]} is not installed") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self._timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise CaptureError(f"{command[0]} timed out after {self._timeout}s") from e

        if proc.returncode != 0:
            raise CaptureError(
                f"{command[0]} failed ({proc.returncode}): {stderr.decode(errors='replace').strip()}"
            )
        output = stdout.decode(errors="replace").strip()
        if not output:
            raise CaptureError(f"{command[0]} returned no application name")
        return output
