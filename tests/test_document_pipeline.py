"""Tests for whole-document chunked processing."""
from __future__ import annotations

import pytest

from services.notation.latex_validator import StrictValidationError
from services.rendering.chunk_processor import ChunkedRenderOptions, ChunkProcessor
from services.rendering.document_pipeline import (
    CHUNK_SEPARATOR,
    iter_processed_chunks,
    process_all_chunks,
    summarize_chunks,
)


def _options(**overrides) -> ChunkedRenderOptions:
    overrides.setdefault("log_progress", False)
    return ChunkedRenderOptions(**overrides)


def _words(count: int) -> str:
    return " ".join(f"w{i}" for i in range(count))


class TestProcessAllChunks:
    """Test cases for the document pipeline."""

    def test_chunks_in_document_order(self) -> None:
        result = process_all_chunks(_words(620), _options(words_per_chunk=300))
        assert [c.index for c in result.chunks] == [0, 1, 2]
        assert result.success_rate == 1.0
        assert result.successful_chunks == 3
        assert result.processed_content == CHUNK_SEPARATOR.join(
            c.processed_content for c in result.chunks
        )

    def test_empty_document(self) -> None:
        result = process_all_chunks("", _options())
        assert result.chunks == ()
        assert result.success_rate == 0.0
        assert result.processed_content == ""

    def test_partial_failure(self) -> None:
        result = process_all_chunks("hello world undefined", _options(words_per_chunk=2))
        assert [c.success for c in result.chunks] == [True, False]
        assert result.success_rate == 0.5
        assert result.total_errors == sum(len(c.errors) for c in result.chunks)
        assert result.total_warnings == 1
        assert 0.0 <= result.success_rate <= 1.0

    def test_progress_callback(self) -> None:
        seen: list[tuple[int, int]] = []
        process_all_chunks(
            _words(10),
            _options(words_per_chunk=3),
            on_progress=lambda record, done: seen.append((record.index, done)),
        )
        assert seen == [(0, 1), (1, 2), (2, 3), (3, 4)]

    def test_strict_mode_aborts(self) -> None:
        with pytest.raises(StrictValidationError):
            process_all_chunks("Let $x^$ be", _options(strict_mode=True))

    def test_to_dict(self) -> None:
        data = process_all_chunks("a b", _options()).to_dict()
        assert data["success_rate"] == 1.0
        assert len(data["chunks"]) == 1


def test_iteration_is_lazy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that abandoning the generator stops further chunk work."""
    calls: list[int] = []
    original = ChunkProcessor.process_chunk

    def spy(self, chunk, index):
        calls.append(index)
        return original(self, chunk, index)

    monkeypatch.setattr(ChunkProcessor, "process_chunk", spy)
    chunks = iter_processed_chunks(_words(30), _options(words_per_chunk=5))
    first = next(chunks)
    chunks.close()

    assert first.index == 0
    assert calls == [0]


def test_summarize_partial_records() -> None:
    records = list(iter_processed_chunks(_words(9), _options(words_per_chunk=3)))[:2]
    result = summarize_chunks(records)
    assert len(result.chunks) == 2
    assert result.success_rate == 1.0
