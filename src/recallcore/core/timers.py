"""
Answer-timeout timers.

The scheduler only needs "call this later, unless I cancel first". Two
implementations are provided:

- AsyncioTimerScheduler: ``loop.call_later`` on the running event loop.
- ThreadingTimerScheduler: a daemon ``threading.Timer`` per call.

``default_timer_scheduler()`` picks asyncio when called from inside a running
loop and threads otherwise. Hosts with their own loop (GUI toolkits, trio,
tests) pass any object with a matching ``call_later``.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerScheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioTimerScheduler:
    """Schedules on ``loop`` or, when None, on the loop running at call time."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class ThreadingTimerScheduler:
    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class _AutoTimerScheduler:
    def __init__(self):
        self._threads = ThreadingTimerScheduler()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._threads.call_later(delay, callback)
        return loop.call_later(delay, callback)


def default_timer_scheduler() -> TimerScheduler:
    return _AutoTimerScheduler()
