"""Child outcome classification and run-wide status aggregation."""

from __future__ import annotations

import signal as signals
from dataclasses import dataclass
from enum import Enum, IntEnum

from parmap.pool.launcher import ChildExit

# xargs convention: a child exiting 255 asks the caller to stop everything.
STOP_EXIT_CODE = 255
EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class ChildOutcome(str, Enum):
    """Normalized outcome of one reaped child."""

    SUCCESS = "success"
    SOFT_FAILURE = "soft_failure"
    FATAL = "fatal"


class Verdict(IntEnum):
    """Run-wide verdict; ordered so that aggregation is a max()."""

    OK = 0
    SOFT_FAILURE = 1
    FATAL = 2


_VERDICT_BY_OUTCOME = {
    ChildOutcome.SUCCESS: Verdict.OK,
    ChildOutcome.SOFT_FAILURE: Verdict.SOFT_FAILURE,
    ChildOutcome.FATAL: Verdict.FATAL,
}


@dataclass(slots=True)
class ChildCompletion:
    """Classified completion of one child."""

    pid: int
    token: str | None
    outcome: ChildOutcome
    reason: str

    @property
    def fatal(self) -> bool:
        return self.outcome is ChildOutcome.FATAL


def classify_child_exit(child: ChildExit, *, token: str | None = None) -> ChildCompletion:
    """Classify a child exit: signal, then status 255, then other nonzero, then zero."""

    if child.signal is not None:
        return ChildCompletion(
            pid=child.pid,
            token=token,
            outcome=ChildOutcome.FATAL,
            reason=f"terminated by signal {_signal_name(child.signal)}",
        )
    if child.exit_code == STOP_EXIT_CODE:
        return ChildCompletion(
            pid=child.pid,
            token=token,
            outcome=ChildOutcome.FATAL,
            reason=f"exited with status {STOP_EXIT_CODE}",
        )
    if child.exit_code:
        return ChildCompletion(
            pid=child.pid,
            token=token,
            outcome=ChildOutcome.SOFT_FAILURE,
            reason=f"exited with status {child.exit_code}",
        )
    return ChildCompletion(
        pid=child.pid,
        token=token,
        outcome=ChildOutcome.SUCCESS,
        reason="exited with status 0",
    )


class StatusAggregator:
    """Monotonic fold of child outcomes and fatal errors into one verdict."""

    def __init__(self) -> None:
        self.verdict = Verdict.OK
        self.succeeded = 0
        self.soft_failures = 0
        self.fatal_failures = 0

    def record(self, completion: ChildCompletion) -> Verdict:
        if completion.outcome is ChildOutcome.SUCCESS:
            self.succeeded += 1
        elif completion.outcome is ChildOutcome.SOFT_FAILURE:
            self.soft_failures += 1
        else:
            self.fatal_failures += 1
        self.verdict = max(self.verdict, _VERDICT_BY_OUTCOME[completion.outcome])
        return self.verdict

    def record_error(self) -> Verdict:
        """Parse and resource errors are fatal for the run."""

        self.verdict = Verdict.FATAL
        return self.verdict

    @property
    def stop_requested(self) -> bool:
        return self.verdict is Verdict.FATAL

    @property
    def exit_code(self) -> int:
        return EXIT_SUCCESS if self.verdict is Verdict.OK else EXIT_FAILURE


def _signal_name(signum: int) -> str:
    try:
        return signals.strsignal(signum) or signals.Signals(signum).name
    except ValueError:
        return str(signum)
