"""
Shared test fixtures.

Provides: a manual scheduler for driving debounce timers, a controller and
a diagram manager wired to it.
"""

import pytest

from mermaid_sync.backend.diagram_manager import DiagramManager
from mermaid_sync.backend.sync_controller import SyncController
from mermaid_sync.core.models import Dialect


class _ManualTimer:
    def __init__(self, scheduler, due, callback):
        self._scheduler = scheduler
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self._timers: list[_ManualTimer] = []

    def call_later(self, delay, callback):
        timer = _ManualTimer(self, self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return len([t for t in self._timers if not t.cancelled])

    def advance(self, seconds: float):
        """Move the clock forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.now = timer.due
            timer.callback()
        self.now = target
        self._timers = [t for t in self._timers if not t.cancelled]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def controller(scheduler):
    return SyncController(scheduler, dialect=Dialect.FLOWCHART, settle_delay=0.1)


@pytest.fixture
def manager(controller):
    return DiagramManager(controller)


@pytest.fixture
def published(controller):
    """Texts published by the controller, in order."""
    texts: list[str] = []
    controller.on_text_published(texts.append)
    return texts
