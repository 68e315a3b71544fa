"""Bounded process pool that runs one shell command per input token."""

from __future__ import annotations

import errno
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from parmap.errors import ParmapError, ResourceError
from parmap.pool.launcher import LaunchRequest, ProcessLauncher
from parmap.pool.reaper import JobTable, Reaper
from parmap.pool.status import StatusAggregator, Verdict

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunResult:
    """Outcome of one pool run for CLI reporting."""

    verdict: Verdict
    exit_code: int
    dispatched: int
    succeeded: int
    soft_failures: int
    fatal_failures: int
    error: ParmapError | None = None


class PoolController:
    """Dispatches tokens in input order with at most ``max_jobs`` live children.

    Each child receives a snapshot of ``base_env`` with ``variable`` bound to its
    token. A fatal child outcome or a parse/resource error stops token
    consumption; already running children are always drained before returning.
    """

    def __init__(
        self,
        *,
        variable: str,
        command: str,
        max_jobs: int,
        launcher: ProcessLauncher,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        if max_jobs < 1:
            raise ValueError(f"max_jobs must be >= 1, got {max_jobs}")
        self.variable = variable
        self.command = command
        self.max_jobs = max_jobs
        self.launcher = launcher
        self.base_env = dict(os.environ if base_env is None else base_env)
        self.jobs = JobTable()
        self.aggregator = StatusAggregator()
        self.reaper = Reaper(launcher=launcher, jobs=self.jobs, aggregator=self.aggregator)
        self.dispatched = 0

    def run(self, tokens: Iterable[str]) -> RunResult:
        error: ParmapError | None = None
        try:
            for token in tokens:
                if not token:
                    continue
                self._dispatch(token)
                self.reaper.throttled(self.max_jobs)
                if self.aggregator.stop_requested:
                    logger.debug("Fatal child outcome, no further tokens are read")
                    break
        except ParmapError as caught:
            error = caught
            self.aggregator.record_error()

        try:
            self.reaper.drain()
        except ResourceError as caught:
            self.aggregator.record_error()
            error = error or caught

        return RunResult(
            verdict=self.aggregator.verdict,
            exit_code=self.aggregator.exit_code,
            dispatched=self.dispatched,
            succeeded=self.aggregator.succeeded,
            soft_failures=self.aggregator.soft_failures,
            fatal_failures=self.aggregator.fatal_failures,
            error=error,
        )

    def _dispatch(self, token: str) -> None:
        pid = self.launcher.launch(
            LaunchRequest(command=self.command, env=self._bind(token)),
        )
        self.jobs.add(pid, token)
        self.dispatched += 1
        logger.debug("%d: started for %s=%r (%d running)", pid, self.variable, token, len(self.jobs))

    def _bind(self, token: str) -> dict[str, str]:
        if not self.variable or "=" in self.variable or "\0" in self.variable:
            raise ResourceError("setenv", os.strerror(errno.EINVAL))
        env = dict(self.base_env)
        env[self.variable] = token
        return env
