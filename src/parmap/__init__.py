"""Parallel execution of a shell command for each argument read from stdin."""

__version__ = "0.4.0"
