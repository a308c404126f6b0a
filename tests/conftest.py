"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so ``import onecache`` resolves
to the local sources regardless of the working directory pytest chooses, and
provides deterministic time and scheduling fakes.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List

import pytest


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class ScheduledCall:
    def __init__(self, func: Callable[[], None], delay_ms: float) -> None:
        self.func = func
        self.delay_ms = delay_ms
        self.cancelled = False
        self.cancel_calls = 0
        self.fired = False

    def cancel(self) -> None:
        self.cancel_calls += 1
        if not self.fired:
            self.cancelled = True


class ManualScheduler:
    """Scheduler that only runs callbacks when the test says so."""

    def __init__(self) -> None:
        self.calls: List[ScheduledCall] = []

    def run_once_after(self, func: Callable[[], None], delay_ms: float):
        call = ScheduledCall(func, delay_ms)
        self.calls.append(call)
        return call.cancel

    def pending(self) -> List[ScheduledCall]:
        return [c for c in self.calls if not c.cancelled and not c.fired]

    def fire(self, call: ScheduledCall) -> None:
        """Run a call even if it was cancelled, like a callback already in flight."""
        call.fired = True
        call.func()

    def fire_pending(self) -> None:
        for call in self.pending():
            self.fire(call)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()
