from __future__ import annotations

import io

import allure
import pytest

from parmap.errors import ResourceError, TokenOverflowError, UnterminatedQuoteError
from parmap.tokenizer import DEFAULT_DELIMITERS, Tokenizer, delimiter_set

pytestmark = [
    allure.epic("Input Parsing"),
    allure.feature("Tokenizer State Machine"),
]


def _tokens(data: bytes, *, capacity: int = 1024, delimiters: str | None = None) -> list[str]:
    tokenizer = Tokenizer(
        io.BytesIO(data),
        capacity=capacity,
        delimiters=delimiter_set(delimiters),
    )
    return list(tokenizer)


def test_splits_on_default_whitespace() -> None:
    assert _tokens(b"a b c") == ["a", "b", "c"]


def test_default_delimiters_cover_tabs_and_newlines() -> None:
    assert _tokens(b"a\tb\nc\r\nd") == ["a", "b", "c", "", "d"]
    assert {ord(" "), ord("\t"), ord("\n")} <= DEFAULT_DELIMITERS


def test_quoted_delimiters_are_literal() -> None:
    assert _tokens(b"'a b' c") == ["a b", "c"]
    assert _tokens(b'"x\ty" z') == ["x\ty", "z"]


def test_quote_may_start_mid_token() -> None:
    assert _tokens(b"pre'fix suf'fix next") == ["prefix suffix", "next"]


def test_non_matching_quote_inside_quotes_is_literal() -> None:
    assert _tokens(b"\"it's\" 'say \"hi\"'") == ["it's", 'say "hi"']


def test_backslash_escapes_delimiter() -> None:
    assert _tokens(b"a\\ b c") == ["a b", "c"]


def test_backslash_escapes_quote_and_backslash() -> None:
    assert _tokens(b"\\'a \\\\b") == ["'a", "\\b"]


def test_backslash_inside_quotes_does_not_close_quote() -> None:
    assert _tokens(b"'a\\'b' c") == ["a'b", "c"]
    assert _tokens(b'"a\\"b c" d') == ['a"b c', "d"]


def test_final_token_without_trailing_delimiter() -> None:
    assert _tokens(b"one two\n") == ["one", "two"]
    assert _tokens(b"one two") == ["one", "two"]


def test_consecutive_delimiters_yield_empty_tokens() -> None:
    assert _tokens(b"a  b") == ["a", "", "b"]


def test_empty_stream_has_no_tokens() -> None:
    assert _tokens(b"") == []


def test_dangling_backslash_at_end_is_dropped() -> None:
    assert _tokens(b"abc\\") == ["abc"]


def test_unterminated_single_quote_is_fatal() -> None:
    with pytest.raises(UnterminatedQuoteError, match="Missing closing single-quote"):
        _tokens(b"'unterminated")


def test_unterminated_double_quote_after_escape_is_fatal() -> None:
    with pytest.raises(UnterminatedQuoteError, match="Missing closing double-quote"):
        _tokens(b'ok "still open\\')


def test_custom_delimiters_replace_whitespace() -> None:
    assert _tokens(b"a b,c d", delimiters=",") == ["a b", "c d"]


def test_custom_delimiters_always_split_on_nul() -> None:
    assert _tokens(b"one two\0three\0", delimiters="") == ["one two", "three"]


def test_token_at_capacity_is_accepted() -> None:
    assert _tokens(b"abcd efg", capacity=4) == ["abcd", "efg"]


def test_token_over_capacity_is_fatal() -> None:
    tokenizer = Tokenizer(io.BytesIO(b"ok abcde"), capacity=4)

    assert tokenizer.next_token() == "ok"
    with pytest.raises(TokenOverflowError, match="exceeds buffer size"):
        tokenizer.next_token()


def test_tokens_are_produced_lazily() -> None:
    class _OneChunkStream:
        def __init__(self) -> None:
            self.reads = 0

        def read1(self, size: int) -> bytes:
            self.reads += 1
            if self.reads > 1:
                raise AssertionError("tokenizer read past the first token")
            return b"first second"

    tokenizer = Tokenizer(_OneChunkStream(), capacity=64)  # type: ignore[arg-type]

    assert tokenizer.next_token() == "first"


def test_non_utf8_bytes_survive_round_trip() -> None:
    (token,) = _tokens(b"caf\xe9")

    assert token.encode("utf-8", "surrogateescape") == b"caf\xe9"


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError, match="capacity"):
        Tokenizer(io.BytesIO(b""), capacity=0)


def test_stream_read_error_is_resource_error() -> None:
    class _BrokenStream:
        def read1(self, size: int) -> bytes:
            raise OSError(5, "Input/output error")

    tokenizer = Tokenizer(_BrokenStream(), capacity=64)  # type: ignore[arg-type]

    with pytest.raises(ResourceError, match="^read: Input/output error$"):
        tokenizer.next_token()
