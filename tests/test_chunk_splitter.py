"""Tests for word-bounded chunk splitting."""
from __future__ import annotations

import pytest

from services.rendering.chunk_splitter import (
    normalize_whitespace,
    preserve_math_expressions,
    split_into_chunks,
    unclosed_math_start,
)


def _words(count: int) -> str:
    return " ".join(f"w{i}" for i in range(count))


def test_chunk_sizes() -> None:
    chunks = split_into_chunks(_words(620), 300)
    assert [len(c.split()) for c in chunks] == [300, 300, 20]
    assert chunks[0].startswith("w0 ")
    assert chunks[2].endswith("w619")


def test_order_preserved() -> None:
    chunks = split_into_chunks(_words(10), 3)
    assert " ".join(chunks) == _words(10)


def test_empty_content() -> None:
    assert split_into_chunks("", 300) == []
    assert split_into_chunks("   \n\t ", 300) == []


def test_invalid_chunk_size() -> None:
    with pytest.raises(ValueError):
        split_into_chunks("a b c", 0)


def test_normalize_whitespace() -> None:
    assert normalize_whitespace("  a\n\n\n b\t c ") == "a b c"


def test_odd_dollar_is_cut() -> None:
    assert preserve_math_expressions("a $b c", "") == "a"


def test_open_expression_pulled_forward() -> None:
    result = preserve_math_expressions("y$ rest $z$", "intro $x +")
    assert result == "$x + y$ rest $z$"


def test_expression_across_chunk_boundary() -> None:
    chunks = split_into_chunks("a b $x + y$ c d", 3)
    assert chunks == ["a b", "$x + y$ c", "d"]


def test_every_chunk_has_even_dollars() -> None:
    content = "Let $a + b$ and $c +\nd$ then $e$ with $f " * 40
    for chunk in split_into_chunks(content, 7):
        assert chunk.count("$") % 2 == 0


def test_display_expression_across_chunk_boundary() -> None:
    chunks = split_into_chunks("a b $$x + y$$ c d e", 3)
    assert chunks == ["a b", "$$x + y$$ c", "d e"]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("a $$x", 2),
        ("$a$", None),
        ("$$a$$", None),
        ("$$a $ b", 0),
        ("$x$$y", 3),
        ("plain words", None),
    ],
)
def test_unclosed_math_start(text: str, expected: object) -> None:
    assert unclosed_math_start(text) == expected
