"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from parmap.errors import ResourceError
from parmap.pool.launcher import ChildExit, LaunchRequest


@dataclass
class FakeLauncher:
    """In-memory process facility; children finish in launch order.

    ``outcomes`` maps a token to ``(exit_code, signal)``; unlisted tokens exit 0.
    Non-blocking polls find a finished child only when ``finish_on_poll`` is set.
    """

    variable: str = "N"
    outcomes: dict[str, tuple[int | None, int | None]] = field(default_factory=dict)
    finish_on_poll: bool = False
    fail_on: frozenset[str] = frozenset()
    launched: list[LaunchRequest] = field(default_factory=list)
    live: dict[int, str] = field(default_factory=dict)
    max_live: int = 0
    next_pid: int = 1000

    @property
    def tokens(self) -> list[str]:
        return [request.env[self.variable] for request in self.launched]

    def launch(self, request: LaunchRequest) -> int:
        token = request.env[self.variable]
        if token in self.fail_on:
            raise ResourceError("fork", "Resource temporarily unavailable")
        self.launched.append(request)
        self.next_pid += 1
        self.live[self.next_pid] = token
        self.max_live = max(self.max_live, len(self.live))
        return self.next_pid

    def wait(self, *, block: bool) -> ChildExit | None:
        if not self.live:
            raise ChildProcessError(10, "No child processes")
        if not block and not self.finish_on_poll:
            return None
        pid = next(iter(self.live))
        token = self.live.pop(pid)
        exit_code, signal = self.outcomes.get(token, (0, None))
        return ChildExit(pid=pid, exit_code=exit_code, signal=signal)


@pytest.fixture()
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture()
def make_launcher() -> type[FakeLauncher]:
    return FakeLauncher
