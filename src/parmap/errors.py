"""Error taxonomy for fatal run conditions."""

from __future__ import annotations


class ParmapError(RuntimeError):
    """Fatal condition that stops token consumption and drains running children."""


class ParseError(ParmapError):
    """Input stream could not be split into tokens."""


class TokenOverflowError(ParseError):
    def __init__(self, capacity: int) -> None:
        super().__init__("Input token exceeds buffer size")
        self.capacity = capacity


class UnterminatedQuoteError(ParseError):
    def __init__(self, quote: str) -> None:
        kind = "single" if quote == "'" else "double"
        super().__init__(f"Missing closing {kind}-quote, aborting")
        self.quote = quote


class ResourceError(ParmapError):
    """OS refused a resource needed to dispatch a token (process, environment, stdin)."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"{operation}: {reason}")
        self.operation = operation
        self.reason = reason

    @classmethod
    def from_os_error(cls, operation: str, error: OSError) -> ResourceError:
        return cls(operation, error.strerror or str(error))
