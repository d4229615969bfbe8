"""Split long documents into word-bounded chunks for PDF rendering."""
from __future__ import annotations

import re
from typing import Optional

LOOKBACK_WORDS = 20

_DELIMITER_RE = re.compile(r"\$\$|\$")


def normalize_whitespace(content: str) -> str:
    content = re.sub(r"\s+", " ", content)
    content = re.sub(r"\n{3,}", "\n\n", content)
    return content.strip()


def unclosed_math_start(text: str) -> Optional[int]:
    """Offset of the math expression left open at the end of ``text``, if any.

    ``$$`` is read as one display delimiter; a single ``$`` inside display
    math does not close it.
    """
    state: Optional[str] = None
    start = 0
    for match in _DELIMITER_RE.finditer(text):
        token = match.group(0)
        if state is None:
            state, start = token, match.start()
        elif token == state:
            state = None
        elif state == "$":
            # $x$$y: the inline expression closes and a new one opens
            state, start = "$", match.start() + 1
    return start if state is not None else None


def split_into_chunks(content: str, words_per_chunk: int = 300) -> list[str]:
    """Partition ``content`` into chunks of at most ``words_per_chunk`` words.

    Math opened in the lookback window before a chunk is pulled into that
    chunk, and a chunk that still ends inside math is cut where that
    expression starts (the cut-off tail is dropped).
    """
    if words_per_chunk < 1:
        raise ValueError("words_per_chunk must be at least 1")

    words = normalize_whitespace(content).split()
    chunks: list[str] = []
    for start in range(0, len(words), words_per_chunk):
        chunk = " ".join(words[start:start + words_per_chunk])
        lookback = " ".join(words[max(0, start - LOOKBACK_WORDS):start])
        chunks.append(preserve_math_expressions(chunk, lookback))
    return chunks


def preserve_math_expressions(chunk: str, previous_context: str) -> str:
    # Tail of an expression that was opened in the lookback window
    if "$" in chunk:
        open_at = unclosed_math_start(previous_context)
        if open_at is not None:
            chunk = f"{previous_context[open_at:]} {chunk}"

    # Never ship an unterminated expression forward
    while True:
        open_at = unclosed_math_start(chunk)
        if open_at is None and chunk.count("$") % 2 == 0:
            return chunk
        cut = open_at if open_at is not None else chunk.rfind("$")
        chunk = chunk[:cut].rstrip()
