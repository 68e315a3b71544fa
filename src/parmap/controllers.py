"""Controller for the parmap CLI command."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import BinaryIO

from parmap.config import Settings
from parmap.pool import PoolController, RunResult, ShellLauncher
from parmap.pool.launcher import ProcessLauncher
from parmap.tokenizer import Tokenizer


@dataclass(slots=True)
class ParmapRunCommand:
    """CLI input for one parallel run."""

    variable: str
    command: str
    delimiters: str | None
    max_jobs: int | None


class ParmapCliController:
    """Resolves settings and runs the process pool over a token stream."""

    def __init__(self, launcher: ProcessLauncher | None = None) -> None:
        self._launcher = launcher

    def settings(self, command: ParmapRunCommand) -> Settings:
        settings = Settings.from_env(
            variable=command.variable,
            command=command.command,
            delimiters=command.delimiters,
            max_jobs=command.max_jobs,
        )
        settings.validate()
        return settings

    def run(
        self,
        settings: Settings,
        stream: BinaryIO,
        environ: Mapping[str, str] | None = None,
    ) -> RunResult:
        """Tokenize ``stream`` and dispatch one child per token."""

        base_env = dict(os.environ if environ is None else environ)
        tokenizer = Tokenizer(
            stream,
            capacity=settings.token_capacity(base_env),
            delimiters=settings.delimiter_bytes(),
        )
        controller = PoolController(
            variable=settings.variable,
            command=settings.command,
            max_jobs=settings.pool.effective_max_jobs(),
            launcher=self._launcher or ShellLauncher(settings.pool.shell),
            base_env=base_env,
        )
        return controller.run(tokenizer)
