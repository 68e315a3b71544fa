"""Process creation and wait facility for pool children."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from typing import Protocol

from parmap.config import DEFAULT_SHELL
from parmap.errors import ResourceError


@dataclass(slots=True)
class LaunchRequest:
    """One child to start: shell command plus the full environment it sees."""

    command: str
    env: dict[str, str]


@dataclass(slots=True, frozen=True)
class ChildExit:
    """Termination status of one reaped child."""

    pid: int
    exit_code: int | None = None
    signal: int | None = None


class ProcessLauncher(Protocol):
    """Protocol implemented by process facilities."""

    def launch(self, request: LaunchRequest) -> int:
        """Start a child and return its pid; raise ResourceError on failure."""

    def wait(self, *, block: bool) -> ChildExit | None:
        """Reap one child.

        Return None when ``block`` is false and no child has terminated yet.
        Raise ChildProcessError when there are no children left to wait for.
        """


class ShellLauncher:
    """Run each command as ``<shell> -c COMMAND`` with stdin from the null device."""

    def __init__(self, shell: str = DEFAULT_SHELL) -> None:
        self.shell = shell
        self._processes: dict[int, subprocess.Popen[bytes]] = {}

    def launch(self, request: LaunchRequest) -> int:
        try:
            process = subprocess.Popen(  # noqa: S603
                [self.shell, "-c", request.command],
                env=request.env,
                stdin=subprocess.DEVNULL,
            )
        except ValueError as error:
            # Embedded NUL or "=" in the environment overlay.
            raise ResourceError("setenv", str(error)) from error
        except OSError as error:
            raise ResourceError.from_os_error("fork", error) from error
        self._processes[process.pid] = process
        return process.pid

    def wait(self, *, block: bool) -> ChildExit | None:
        pid, status = os.waitpid(-1, 0 if block else os.WNOHANG)
        if pid == 0:
            return None

        process = self._processes.pop(pid, None)
        if process is not None:
            # Keep Popen from waiting on a pid that is already reaped.
            process.returncode = os.waitstatus_to_exitcode(status)
        if os.WIFSIGNALED(status):
            return ChildExit(pid=pid, signal=os.WTERMSIG(status))
        return ChildExit(pid=pid, exit_code=os.WEXITSTATUS(status))
