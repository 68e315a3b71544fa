"""CLI entrypoint for parmap."""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import rich_click as click

from parmap import __version__
from parmap.controllers import ParmapCliController, ParmapRunCommand
from parmap.pool.status import EXIT_FAILURE

click.rich_click.USE_MARKDOWN = True
PROG_NAME = "parmap"
PARMAP_CONTROLLER = ParmapCliController()
_JOB_COUNT_PATTERN = re.compile(r"\s*[+-]?[0-9]+")


class ParmapCommand(click.RichCommand):
    """Command whose usage errors exit with status 1 like every other failure."""

    def make_context(
        self,
        info_name: str | None,
        args: list[str],
        parent: click.Context | None = None,
        **extra: Any,
    ) -> click.Context:
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as error:
            error.exit_code = EXIT_FAILURE
            raise


class JobCount(click.ParamType):
    """Integer made of an optional sign and digits, nothing trailing."""

    name = "integer"

    def convert(
        self,
        value: Any,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> int:
        if isinstance(value, int):
            return value
        if not _JOB_COUNT_PATTERN.fullmatch(value):
            self.fail(f"Invalid number '{value}' for argument '-m'", param, ctx)
        return int(value)


class _ClickEchoHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


@click.command(
    cls=ParmapCommand,
    options_metavar="[option]...",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(
    __version__,
    "-v",
    "--version",
    prog_name=PROG_NAME,
    message="%(prog)s %(version)s",
    help="Print version number.",
)
@click.option(
    "-d",
    "--delimiter",
    "delimiter",
    default=None,
    help="Set delimiter characters for parsing arguments from stdin (default: whitespace).",
)
@click.option(
    "-m",
    "--max_jobs",
    "max_jobs",
    type=JobCount(),
    default=None,
    help="Maximum number of jobs to run in parallel (< 1: number of processors).",
)
@click.argument("variable", metavar="variable")
@click.argument("command", metavar="command")
def parmap(
    variable: str,
    command: str,
    delimiter: str | None,
    max_jobs: int | None,
) -> None:
    """Invokes a command in parallel for each argument parsed from stdin.

    Each argument is bound to the environment variable **variable** and
    **command** is run through `/bin/sh -c`, so it can refer to `$variable`.
    Arguments may be quoted with single or double quotes, and a backslash
    escapes the next character.
    """

    try:
        settings = PARMAP_CONTROLLER.settings(
            ParmapRunCommand(
                variable=variable,
                command=command,
                delimiters=delimiter,
                max_jobs=max_jobs,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    _configure_logging(settings.log.numeric_level())
    try:
        result = PARMAP_CONTROLLER.run(settings, sys.stdin.buffer)
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    if result.error is not None:
        click.echo(f"{PROG_NAME}: {result.error}", err=True)
    if result.exit_code:
        click.get_current_context().exit(result.exit_code)


def _configure_logging(level: int) -> None:
    logger = logging.getLogger(PROG_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, _ClickEchoHandler):
            logger.removeHandler(handler)
    handler = _ClickEchoHandler()
    handler.setFormatter(logging.Formatter(f"{PROG_NAME}: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


if __name__ == "__main__":  # pragma: no cover
    parmap()
