"""Runtime configuration for parallel command execution."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from parmap.tokenizer import delimiter_set

DEFAULT_SHELL = "/bin/sh"
DEFAULT_LOG_LEVEL = "WARNING"

# POSIX xargs keeps the exec argument list and environment 2048 bytes below ARG_MAX.
ARG_MAX_HEADROOM = 2048
# Shell argv, "=" between variable and value, and terminators.
EXEC_OVERHEAD_BYTES = 8
FALLBACK_ARG_MAX = 131_072


@dataclass(slots=True)
class PoolSettings:
    """Process pool settings."""

    max_jobs: int = 0
    shell: str = DEFAULT_SHELL

    def effective_max_jobs(self) -> int:
        """Ceiling for live children; non-positive means one per processor."""

        if self.max_jobs >= 1:
            return self.max_jobs
        return os.cpu_count() or 1


@dataclass(slots=True)
class LoggingSettings:
    """Diagnostics settings."""

    level: str = DEFAULT_LOG_LEVEL

    def numeric_level(self) -> int:
        value = logging.getLevelName(self.level.strip().upper())
        if not isinstance(value, int):
            raise ValueError(f"Invalid PARMAP_LOG_LEVEL: {self.level!r}")
        return value


@dataclass(slots=True)
class Settings:
    """Settings for one run: what to execute and how to split input."""

    variable: str = ""
    command: str = ""
    delimiters: str | None = None
    pool: PoolSettings = field(default_factory=PoolSettings)
    log: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_env(
        cls,
        *,
        variable: str,
        command: str,
        delimiters: str | None = None,
        max_jobs: int | None = None,
    ) -> Settings:
        """Load settings from environment; explicit arguments take precedence."""

        return cls(
            variable=variable,
            command=command,
            delimiters=delimiters,
            pool=PoolSettings(
                max_jobs=max_jobs if max_jobs is not None else _env_int("PARMAP_MAX_JOBS", 0),
                shell=os.getenv("PARMAP_SHELL", DEFAULT_SHELL).strip() or DEFAULT_SHELL,
            ),
            log=LoggingSettings(
                level=os.getenv("PARMAP_LOG_LEVEL", DEFAULT_LOG_LEVEL),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values that cannot start a run."""

        self.log.numeric_level()

    def delimiter_bytes(self) -> frozenset[int]:
        return delimiter_set(self.delimiters)

    def token_capacity(self, environ: Mapping[str, str] | None = None) -> int:
        return compute_token_capacity(
            variable=self.variable,
            command=self.command,
            environ=os.environ if environ is None else environ,
        )


def compute_token_capacity(
    *,
    variable: str,
    command: str,
    environ: Mapping[str, str],
    arg_max: int | None = None,
) -> int:
    """Largest token that keeps one exec call within the OS argument-size limit."""

    limit = arg_max if arg_max is not None else _arg_max()
    capacity = (
        limit
        - ARG_MAX_HEADROOM
        - len(os.fsencode(variable))
        - len(os.fsencode(command))
        - EXEC_OVERHEAD_BYTES
    )
    for key, value in environ.items():
        capacity -= len(os.fsencode(key)) + len(os.fsencode(value)) + 2
    if capacity <= 0:
        raise ValueError("Environment too large for token buffer.")
    return capacity


def _arg_max() -> int:
    try:
        value = os.sysconf("SC_ARG_MAX")
    except (AttributeError, ValueError, OSError):
        return FALLBACK_ARG_MAX
    return value if value > 0 else FALLBACK_ARG_MAX


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error
