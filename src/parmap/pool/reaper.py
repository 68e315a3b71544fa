"""Harvesting of terminated pool children."""

from __future__ import annotations

import logging

from parmap.errors import ResourceError
from parmap.pool.launcher import ProcessLauncher
from parmap.pool.status import ChildCompletion, StatusAggregator, classify_child_exit

logger = logging.getLogger(__name__)


class JobTable:
    """Live, unreaped children keyed by pid."""

    def __init__(self) -> None:
        self._tokens: dict[int, str] = {}

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, pid: object) -> bool:
        return pid in self._tokens

    def add(self, pid: int, token: str) -> None:
        self._tokens[pid] = token

    def pop(self, pid: int) -> str | None:
        return self._tokens.pop(pid, None)

    def clear(self) -> None:
        self._tokens.clear()


class Reaper:
    """Reap children in throttled mode after each spawn, or drain them all."""

    def __init__(
        self,
        *,
        launcher: ProcessLauncher,
        jobs: JobTable,
        aggregator: StatusAggregator,
    ) -> None:
        self.launcher = launcher
        self.jobs = jobs
        self.aggregator = aggregator

    def throttled(self, max_jobs: int) -> ChildCompletion | None:
        """Block for one child when the pool is full, otherwise poll for one."""

        return self._reap_one(block=len(self.jobs) >= max_jobs)

    def drain(self) -> list[ChildCompletion]:
        """Block until every outstanding child has been reaped."""

        completions: list[ChildCompletion] = []
        while len(self.jobs) > 0:
            completion = self._reap_one(block=True)
            if completion is None:
                break
            completions.append(completion)
        return completions

    def _reap_one(self, *, block: bool) -> ChildCompletion | None:
        while True:
            try:
                child = self.launcher.wait(block=block)
            except ChildProcessError:
                if len(self.jobs) > 0:
                    logger.debug("No children left to wait for; %d untracked", len(self.jobs))
                    self.jobs.clear()
                return None
            except OSError as error:
                raise ResourceError.from_os_error("waitpid", error) from error
            if child is None:
                return None

            if child.pid not in self.jobs:
                # Not one of ours, e.g. a helper process of the embedding program.
                logger.debug("Ignoring unrelated child %d", child.pid)
                continue

            completion = classify_child_exit(child, token=self.jobs.pop(child.pid))
            self.aggregator.record(completion)
            if completion.fatal:
                logger.warning("%d: %s", completion.pid, completion.reason)
            else:
                logger.debug("%d: %s (token=%r)", completion.pid, completion.reason, completion.token)
            return completion
