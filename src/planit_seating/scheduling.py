"""Timer port used by autosave and the sync poller."""
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class _ManualHandle:
    def __init__(self, due: float, seq: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock. Nothing fires until ``advance`` moves time forward."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._pending: List[_ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        self._seq += 1
        handle = _ManualHandle(self.now + delay, self._seq, callback)
        self._pending.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._pending if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """Run callbacks due within ``seconds``; returns how many ran."""
        deadline = self.now + seconds
        ran = 0
        while True:
            due = self._next_due(deadline)
            if due is None:
                break
            self._pending.remove(due)
            self.now = due.due
            due.callback()
            ran += 1
        self.now = deadline
        return ran

    def _next_due(self, deadline: float) -> Optional[_ManualHandle]:
        self._pending = [h for h in self._pending if not h.cancelled]
        ready = [h for h in self._pending if h.due <= deadline]
        if not ready:
            return None
        return min(ready, key=lambda h: (h.due, h.seq))


class AsyncioScheduler:
    """Schedules on a running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self.loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
