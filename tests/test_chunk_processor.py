"""Tests for per-chunk validation and retry rendering."""
from __future__ import annotations

import pytest

from services.notation.latex_validator import StrictValidationError
from services.rendering.chunk_processor import (
    ChunkedRenderOptions,
    ChunkProcessor,
    RenderFeasibilityError,
    check_render_feasibility,
    create_safe_content,
    fallback_sanitization,
    process_chunk,
    sanitize_for_pdf,
)

QUIET = ChunkedRenderOptions(log_progress=False)


class TestProcessChunk:
    """Test cases for chunk processing."""

    def test_plain_chunk(self) -> None:
        record = process_chunk("Just some words.", 0, QUIET)
        assert record.success
        assert record.is_valid
        assert record.render_attempts == 1
        assert record.processed_content == "Just some words."
        assert record.errors == ()

    def test_unrenderable_chunk_uses_placeholder(self) -> None:
        record = process_chunk("$$$", 0, QUIET)
        assert not record.success
        assert record.render_attempts == 3
        assert record.original_content == "$$$"
        assert record.processed_content.startswith("[Content section 1:")
        assert record.errors[0] == "Attempt 1: Render validation failed: Unbalanced math delimiters"
        assert record.errors[-1] == "All attempts failed, using safe fallback content"
        assert record.warnings == ("Original mathematical notation may be lost",)

    def test_recovers_on_second_attempt(self) -> None:
        record = process_chunk("cost $a and #x", 0, QUIET)
        assert record.success
        assert record.render_attempts == 2
        assert record.processed_content == "cost a and #x"
        assert record.errors == ("Attempt 1: Render validation failed: Unbalanced math delimiters",)

    def test_fallbacks_stack_until_third_attempt(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that each retry sanitizes the previous attempt's output."""

        def reject_hash(content: str) -> None:
            check_render_feasibility(content)
            if "#" in content:
                raise RenderFeasibilityError("Render validation failed: Contains #")

        monkeypatch.setattr(
            "services.rendering.chunk_processor.check_render_feasibility", reject_hash
        )
        record = process_chunk("cost $a and #x", 0, QUIET)
        assert record.success
        assert record.render_attempts == 3
        assert record.processed_content == "cost a and x"
        assert record.errors == (
            "Attempt 1: Render validation failed: Unbalanced math delimiters",
            "Attempt 2: Render validation failed: Contains #",
        )

    def test_single_attempt(self) -> None:
        record = process_chunk("$$$", 4, ChunkedRenderOptions(max_retries=1, log_progress=False))
        assert record.render_attempts == 1
        assert record.index == 4
        assert len(record.errors) == 2
        assert record.processed_content.startswith("[Content section 5:")

    def test_invalid_math_sanitized(self) -> None:
        record = process_chunk("Let $x^$ be", 0, QUIET)
        assert record.success
        assert not record.is_valid
        assert record.processed_content == "Let $x^{}$ be"
        assert "Missing superscript argument after ^" in record.errors

    def test_validation_disabled(self) -> None:
        options = ChunkedRenderOptions(validate_math=False, log_progress=False)
        record = process_chunk("Let $x^$ be", 0, options)
        assert record.success
        assert record.processed_content == "Let $x^$ be"

    def test_strict_mode_propagates(self) -> None:
        options = ChunkedRenderOptions(strict_mode=True, log_progress=False)
        with pytest.raises(StrictValidationError):
            ChunkProcessor(options).process_chunk("Let $x^$ be", 0)

    def test_nullish_tokens_fail(self) -> None:
        record = process_chunk("undefined null", 2, QUIET)
        assert not record.success
        assert "Attempt 1: Render validation failed: Empty content" in record.errors

    def test_to_dict(self) -> None:
        data = process_chunk("ok", 0, QUIET).to_dict()
        assert data["success"] is True
        assert data["errors"] == []


class TestRenderHelpers:
    """Test cases for sanitization and feasibility helpers."""

    def test_sanitize_for_pdf(self) -> None:
        result = sanitize_for_pdf("a\x00b\n\n c undefined")
        assert result == "ab c"

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("", "Empty content"),
            ("a\x01b", "Contains control characters"),
            ("$a", "Unbalanced math delimiters"),
        ],
    )
    def test_check_render_feasibility_rejects(self, content: str, message: str) -> None:
        with pytest.raises(RenderFeasibilityError, match=message):
            check_render_feasibility(content)

    def test_check_render_feasibility_accepts(self) -> None:
        check_render_feasibility("$a$ and\ttab")

    def test_fallback_levels_shrink(self) -> None:
        text = "Let $x^2 + y$ be; (ok) #1!"
        level1 = fallback_sanitization(text, 1)
        level2 = fallback_sanitization(level1, 2)
        level3 = fallback_sanitization(level2, 3)
        assert "$" not in level1
        assert set(level2) <= set(level1)
        assert set(level3) <= set(level2)
        assert level3 == "Let x 2 y be ok 1"

    def test_create_safe_content(self) -> None:
        assert create_safe_content("a b c", 1) == (
            "[Content section 2: 3 words - Mathematical notation removed for PDF compatibility]"
        )

    def test_options_validation(self) -> None:
        with pytest.raises(ValueError):
            ChunkedRenderOptions(max_retries=0)
        with pytest.raises(ValueError):
            ChunkedRenderOptions(words_per_chunk=0)
