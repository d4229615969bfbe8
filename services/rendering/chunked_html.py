"""HTML assembly for print/PDF export of chunked documents."""
from __future__ import annotations

import html
from typing import Iterable, Optional

from services.rendering.chunk_processor import ChunkedRenderOptions, ChunkRecord
from services.rendering.document_pipeline import DocumentRenderResult, process_all_chunks

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title} - Chunked PDF</title>
    <script>
        window.MathJax = {{
            tex: {{
                inlineMath: [['$', '$'], ['\\\\(', '\\\\)']],
                displayMath: [['$$', '$$'], ['\\\\[', '\\\\]']],
                processEscapes: true,
                processEnvironments: true
            }},
            options: {{
                skipHtmlTags: ['script', 'noscript', 'style', 'textarea', 'pre']
            }}
        }};
    </script>
    <script id="MathJax-script" async src="https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"></script>
    <style>
        body {{
            font-family: 'Times New Roman', serif;
            line-height: 1.6;
            max-width: 8.5in;
            margin: 0 auto;
            padding: 1in;
            color: #333;
            background: white;
        }}
        .chunk {{
            margin-bottom: 1em;
            page-break-inside: avoid;
        }}
        @media print {{
            body {{ margin: 0; padding: 0.5in; font-size: 11pt; }}
            .chunk {{ margin-bottom: 0.8em; }}
        }}
    </style>
</head>
<body>
    <h1>{title}</h1>
{sections}
</body>
</html>
"""


def chunk_diagnostics(chunk: ChunkRecord) -> str:
    return (
        f"<!-- Chunk {chunk.index + 1}: {chunk.render_attempts} attempts, "
        f"{len(chunk.errors)} errors, {len(chunk.warnings)} warnings -->"
    )


def render_chunk_section(chunk: ChunkRecord, include_diagnostics: bool = False) -> str:
    diagnostics = ""
    if include_diagnostics and (not chunk.success or chunk.errors):
        diagnostics = chunk_diagnostics(chunk)
    body = html.escape(chunk.processed_content, quote=False)
    return f'{diagnostics}<div class="chunk" data-chunk="{chunk.index}">{body}</div>'


def generate_chunked_html(
    chunks: Iterable[ChunkRecord],
    document_name: str,
    include_diagnostics: bool = False,
) -> str:
    sections = "\n\n".join(render_chunk_section(c, include_diagnostics) for c in chunks)
    return _PAGE_TEMPLATE.format(title=html.escape(document_name), sections=sections)


def render_document_in_chunks(
    content: str,
    document_name: str,
    options: Optional[ChunkedRenderOptions] = None,
) -> tuple[str, DocumentRenderResult]:
    """Process ``content`` and return the print-ready HTML with its diagnostics."""
    result = process_all_chunks(content, options)
    page = generate_chunked_html(result.chunks, document_name, include_diagnostics=True)
    return page, result
