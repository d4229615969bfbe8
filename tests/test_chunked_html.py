"""Tests for chunked HTML assembly."""
from __future__ import annotations

from services.rendering.chunk_processor import ChunkedRenderOptions, ChunkRecord
from services.rendering.chunked_html import (
    generate_chunked_html,
    render_chunk_section,
    render_document_in_chunks,
)


def _record(**overrides) -> ChunkRecord:
    values = dict(index=0, original_content="a<b", processed_content="a<b", success=True,
                  render_attempts=1)
    values.update(overrides)
    return ChunkRecord(**values)


def test_page_structure() -> None:
    page = generate_chunked_html([_record()], "My <Doc>")
    assert "<title>My &lt;Doc&gt; - Chunked PDF</title>" in page
    assert "<h1>My &lt;Doc&gt;</h1>" in page
    assert '<div class="chunk" data-chunk="0">a&lt;b</div>' in page
    # MathJax must be configured before the loader script runs
    assert page.index("window.MathJax") < page.index('id="MathJax-script"')
    assert "@media print" in page


def test_mathjax_accepts_backslash_delimiters() -> None:
    page = generate_chunked_html([_record()], "Doc")
    assert r"['\\(', '\\)']" in page
    assert r"['\\[', '\\]']" in page


def test_sections_in_order() -> None:
    page = generate_chunked_html(
        [_record(index=0, processed_content="first"), _record(index=1, processed_content="second")],
        "Doc",
    )
    assert page.index("first") < page.index("second")


def test_diagnostics_for_failed_chunk() -> None:
    failed = _record(success=False, render_attempts=3, errors=("boom",))
    section = render_chunk_section(failed, include_diagnostics=True)
    assert section.startswith("<!-- Chunk 1: 3 attempts, 1 errors, 0 warnings -->")


def test_no_diagnostics_for_clean_chunk() -> None:
    assert "<!--" not in render_chunk_section(_record(), include_diagnostics=True)
    failed = _record(success=False, errors=("boom",))
    assert "<!--" not in render_chunk_section(failed, include_diagnostics=False)


def test_render_document_in_chunks() -> None:
    page, result = render_document_in_chunks(
        "Hello $x^2$ world", "Notes", ChunkedRenderOptions(log_progress=False)
    )
    assert "Hello $x^2$ world" in page
    assert result.success_rate == 1.0
    assert len(result.chunks) == 1
