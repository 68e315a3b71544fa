"""Bounded process pool: launch, reap, and aggregate child outcomes."""

from parmap.pool.controller import PoolController, RunResult
from parmap.pool.launcher import ChildExit, LaunchRequest, ProcessLauncher, ShellLauncher
from parmap.pool.reaper import JobTable, Reaper
from parmap.pool.status import (
    ChildCompletion,
    ChildOutcome,
    StatusAggregator,
    Verdict,
    classify_child_exit,
)

__all__ = [
    "ChildCompletion",
    "ChildExit",
    "ChildOutcome",
    "JobTable",
    "LaunchRequest",
    "PoolController",
    "ProcessLauncher",
    "Reaper",
    "RunResult",
    "ShellLauncher",
    "StatusAggregator",
    "Verdict",
    "classify_child_exit",
]
