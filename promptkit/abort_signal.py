"""Shared abort flags set by Ctrl-C / Ctrl-D and helpers to wait on or poll them."""

from __future__ import annotations

import asyncio
import os
import select
import sys
import threading
import time

_POLL_INTERVAL = 0.025
_CTRL_C = "\x03"
_CTRL_D = "\x04"


class AbortSignal:
    """Thread-safe pair of flags recording a Ctrl-C or Ctrl-D request."""

    def __init__(self) -> None:
        self._ctrlc = threading.Event()
        self._ctrld = threading.Event()

    def aborted(self) -> bool:
        return self.aborted_ctrlc() or self.aborted_ctrld()

    def aborted_ctrlc(self) -> bool:
        return self._ctrlc.is_set()

    def aborted_ctrld(self) -> bool:
        return self._ctrld.is_set()

    def reset(self) -> None:
        self._ctrlc.clear()
        self._ctrld.clear()

    def set_ctrlc(self) -> None:
        self._ctrlc.set()

    def set_ctrld(self) -> None:
        self._ctrld.set()


def create_abort_signal() -> AbortSignal:
    """Return a fresh, unset abort signal."""
    return AbortSignal()


async def wait_abort_signal(abort_signal: AbortSignal) -> None:
    """Return once the signal has been set."""
    while not abort_signal.aborted():
        await asyncio.sleep(_POLL_INTERVAL)


def _read_key(timeout: float) -> str | None:
    """Read a single key press from an interactive stdin, or None."""
    try:
        fd = sys.stdin.fileno()
    except (AttributeError, OSError, ValueError):
        return None
    if not os.isatty(fd):
        return None

    if os.name == "nt":
        import msvcrt

        deadline = time.monotonic() + timeout
        while True:
            if msvcrt.kbhit():
                return msvcrt.getwch()
            if time.monotonic() >= deadline:
                return None
            time.sleep(0.005)

    import termios

    old = termios.tcgetattr(fd)
    new = termios.tcgetattr(fd)
    new[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG)
    new[6][termios.VMIN] = 0
    new[6][termios.VTIME] = 0
    termios.tcsetattr(fd, termios.TCSANOW, new)
    try:
        ready, _, _ = select.select([fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(fd, 1)
        return data.decode(errors="ignore") or None
    finally:
        termios.tcsetattr(fd, termios.TCSANOW, old)


def poll_abort_signal(abort_signal: AbortSignal) -> bool:
    """Check the terminal for Ctrl-C / Ctrl-D; set the signal and return True if pressed."""
    key = _read_key(_POLL_INTERVAL)
    if key == _CTRL_C:
        abort_signal.set_ctrlc()
        return True
    if key == _CTRL_D:
        abort_signal.set_ctrld()
        return True
    return False