"""Terminal spinner and running a task with a spinner that can be aborted."""

from __future__ import annotations

import asyncio
import contextlib
import queue
import signal
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Awaitable, ClassVar, TextIO, TypeVar

from .abort_signal import AbortSignal, poll_abort_signal, wait_abort_signal

T = TypeVar("T")

_FRAME_INTERVAL = 0.05
_POLL_INTERVAL = 0.025
_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_CLEAR_DOWN = "\x1b[J"


def _isatty(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


@dataclass
class SpinnerState:
    """Spinner frame counter and message, drawn on a terminal stream."""

    FRAMES: ClassVar[tuple[str, ...]] = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

    index: int = 0
    message: str = ""
    stream: TextIO = field(default_factory=lambda: sys.stdout)

    def step(self) -> None:
        """Draw the next frame; does nothing without a message or a terminal."""
        if not self.message or not _isatty(self.stream):
            return
        frame = self.FRAMES[self.index % len(self.FRAMES)]
        dots = "." * ((self.index // 5) % 4)
        output = f"\r{frame}{self.message}{dots:<3}"
        if self.index == 0:
            output += _HIDE_CURSOR
        self.stream.write(output)
        self.stream.flush()
        self.index += 1

    def set_message(self, message: str) -> None:
        self.clear_message()
        if message:
            self.message = f" {message}"

    def clear_message(self) -> None:
        """Erase the spinner line and show the cursor again."""
        if not self.message or not _isatty(self.stream):
            return
        self.message = ""
        self.stream.write(f"\r{_CLEAR_DOWN}{_SHOW_CURSOR}")
        self.stream.flush()


@dataclass(frozen=True)
class _SetMessage:
    message: str


class _Stop:
    pass


class Spinner:
    """Handle for sending messages to a running spinner."""

    def __init__(self, message: str = "") -> None:
        self._events: queue.SimpleQueue[_SetMessage | _Stop] = queue.SimpleQueue()
        self.set_message(message)

    def set_message(self, message: str) -> None:
        self._events.put(_SetMessage(message))
        time.sleep(0.01)

    def stop(self) -> None:
        self._events.put(_Stop())
        time.sleep(0.01)


def _spin(events: queue.SimpleQueue, state: SpinnerState) -> None:
    next_tick = time.monotonic()
    while True:
        timeout = max(0.0, next_tick - time.monotonic())
        try:
            event = events.get(timeout=timeout)
        except queue.Empty:
            with contextlib.suppress(OSError, ValueError):
                state.step()
            next_tick += _FRAME_INTERVAL
            continue
        if isinstance(event, _Stop):
            state.clear_message()
            return
        state.set_message(event.message)


def spawn_spinner(message: str) -> Spinner:
    """Start a spinner on stdout in a background thread and return its handle."""
    spinner = Spinner(message)
    state = SpinnerState()
    threading.Thread(target=_spin, args=(spinner._events, state), daemon=True).start()
    return spinner


async def _run_abortable_spinner(
    events: queue.SimpleQueue, done: asyncio.Event, abort_signal: AbortSignal
) -> None:
    state = SpinnerState()
    while not abort_signal.aborted():
        await asyncio.sleep(_POLL_INTERVAL)
        if done.is_set():
            break
        try:
            event = events.get_nowait()
        except queue.Empty:
            pass
        else:
            if isinstance(event, _Stop):
                state.clear_message()
            else:
                state.set_message(event.message)
        if await asyncio.to_thread(poll_abort_signal, abort_signal):
            break
        state.step()
    state.clear_message()


def _install_sigint(loop: asyncio.AbstractEventLoop, interrupted: asyncio.Event) -> bool:
    try:
        loop.add_signal_handler(signal.SIGINT, interrupted.set)
    except (NotImplementedError, RuntimeError, ValueError, AttributeError):
        return False
    return True


async def _race(task: Awaitable[T], abort_signal: AbortSignal) -> T:
    loop = asyncio.get_running_loop()
    main = asyncio.ensure_future(task)
    interrupted = asyncio.Event()
    installed = _install_sigint(loop, interrupted)
    interrupt_wait = asyncio.create_task(interrupted.wait())
    abort_wait = asyncio.create_task(wait_abort_signal(abort_signal))
    try:
        done, _ = await asyncio.wait(
            {main, interrupt_wait, abort_wait}, return_when=asyncio.FIRST_COMPLETED
        )
        if main in done:
            return main.result()
        if interrupt_wait in done:
            abort_signal.set_ctrlc()
            raise RuntimeError("Aborted!")
        raise RuntimeError("Aborted.")
    finally:
        for pending in (main, interrupt_wait, abort_wait):
            if not pending.done():
                pending.cancel()
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def abortable_run_with_spinner(
    task: Awaitable[T], message: str, abort_signal: AbortSignal
) -> T:
    """Await ``task`` while showing a spinner; Ctrl-C or the abort signal cancels it.

    Raises RuntimeError when aborted. Without a terminal the task is simply awaited.
    """
    if not _isatty(sys.stdout):
        return await task
    events: queue.SimpleQueue = queue.SimpleQueue()
    events.put(_SetMessage(message))
    done = asyncio.Event()
    spinner_task = asyncio.create_task(_run_abortable_spinner(events, done, abort_signal))
    try:
        return await _race(task, abort_signal)
    finally:
        done.set()
        await spinner_task