"""Per-chunk validation, sanitization and bounded-retry rendering checks.

Each attempt derives a new ``ChunkRecord`` from the previous one; nothing is
mutated in place. A chunk always ends either renderable (``success=True``) or
replaced by a labelled placeholder; the only exception that escapes is
``StrictValidationError`` when strict mode is requested.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Optional

from core.config import settings
from core.logger import logger, progress_logger
from services.notation.latex_validator import LatexValidator, validate_and_sanitize_math

_PDF_UNSAFE_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
_RENDER_BLOCKING_CHARS = re.compile(r"[\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F]")
_NULLISH_TOKENS = re.compile(r"undefined|null")


@dataclass(frozen=True)
class ChunkedRenderOptions:
    words_per_chunk: int = 300
    max_retries: int = 3
    validate_math: bool = True
    strict_mode: bool = False
    log_progress: bool = True

    def __post_init__(self) -> None:
        if self.words_per_chunk < 1:
            raise ValueError("words_per_chunk must be at least 1")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

    @classmethod
    def from_settings(cls) -> "ChunkedRenderOptions":
        return cls(
            words_per_chunk=settings.words_per_chunk,
            max_retries=settings.max_retries,
            validate_math=settings.validate_math,
            strict_mode=settings.strict_mode,
            log_progress=settings.log_progress,
        )


@dataclass(frozen=True)
class ChunkRecord:
    index: int
    original_content: str
    processed_content: str
    is_valid: bool = True
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    render_attempts: int = 0
    success: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "index": self.index,
            "original_content": self.original_content,
            "processed_content": self.processed_content,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "render_attempts": self.render_attempts,
            "success": self.success,
        }


class RenderFeasibilityError(ValueError):
    """Chunk content would not survive MathJax/PDF rendering."""


def sanitize_for_pdf(content: str) -> str:
    content = _PDF_UNSAFE_CHARS.sub("", content)
    content = re.sub(r"\s+", " ", content)
    content = _NULLISH_TOKENS.sub("", content)
    return content.strip()


def check_render_feasibility(content: str) -> None:
    """Raise ``RenderFeasibilityError`` if ``content`` cannot be rendered."""
    if not content:
        raise RenderFeasibilityError("Render validation failed: Empty content")
    if _RENDER_BLOCKING_CHARS.search(content):
        raise RenderFeasibilityError("Render validation failed: Contains control characters")
    if content.count("$") % 2:
        raise RenderFeasibilityError("Render validation failed: Unbalanced math delimiters")


def fallback_sanitization(content: str, attempt: int) -> str:
    """Progressively destructive cleanup; each level keeps a subset of the previous."""
    if attempt == 1:
        return re.sub(r"\$+", "", content)
    if attempt == 2:
        content = re.sub(r"[^a-zA-Z0-9\s.,;:!?()-]", " ", content)
        return re.sub(r"\s+", " ", content)
    content = re.sub(r"[^a-zA-Z0-9\s.,]", " ", content)
    return re.sub(r"\s+", " ", content).strip()


def create_safe_content(original_chunk: str, index: int) -> str:
    word_count = len(original_chunk.split())
    return (
        f"[Content section {index + 1}: {word_count} words - "
        "Mathematical notation removed for PDF compatibility]"
    )


class ChunkProcessor:
    """Run one chunk through validation, PDF sanitization and retries."""

    def __init__(
        self,
        options: Optional[ChunkedRenderOptions] = None,
        validator: Optional[LatexValidator] = None,
    ) -> None:
        self.options = options or ChunkedRenderOptions()
        self.validator = validator or LatexValidator()

    def process_chunk(self, chunk: str, index: int) -> ChunkRecord:
        opts = self.options
        record = ChunkRecord(index=index, original_content=chunk, processed_content=chunk)

        for attempt in range(1, opts.max_retries + 1):
            if opts.log_progress:
                progress_logger.info(
                    "Processing chunk %d, attempt %d/%d", index + 1, attempt, opts.max_retries
                )
            record = self._prepare(replace(record, render_attempts=attempt))

            try:
                check_render_feasibility(record.processed_content)
            except RenderFeasibilityError as exc:
                record = replace(record, errors=record.errors + (f"Attempt {attempt}: {exc}",))
                if opts.log_progress:
                    progress_logger.info("Chunk %d, attempt %d failed: %s", index + 1, attempt, exc)
                if attempt < opts.max_retries:
                    record = replace(
                        record,
                        processed_content=fallback_sanitization(record.processed_content, attempt),
                    )
                continue

            if opts.log_progress:
                progress_logger.info(
                    "Chunk %d: Successfully processed (%d chars)",
                    index + 1, len(record.processed_content),
                )
            return replace(record, success=True)

        logger.warning("Chunk %d: all %d attempts failed, using safe fallback content",
                       index + 1, opts.max_retries)
        return replace(
            record,
            processed_content=create_safe_content(chunk, index),
            errors=record.errors + ("All attempts failed, using safe fallback content",),
            warnings=record.warnings + ("Original mathematical notation may be lost",),
        )

    def _prepare(self, record: ChunkRecord) -> ChunkRecord:
        """Math validation (when enabled) followed by PDF sanitization."""
        opts = self.options
        if opts.validate_math:
            validation = validate_and_sanitize_math(
                record.processed_content,
                strict_mode=opts.strict_mode,
                log_errors=opts.log_progress,
                validator=self.validator,
            )
            if not validation.is_valid:
                record = replace(
                    record,
                    processed_content=validation.content,
                    is_valid=False,
                    errors=record.errors + tuple(e.message for e in validation.errors),
                    warnings=record.warnings + validation.warnings,
                )
                if opts.log_progress:
                    progress_logger.info(
                        "Chunk %d: Math validation failed, using sanitized version", record.index + 1
                    )
        return replace(record, processed_content=sanitize_for_pdf(record.processed_content))


def process_chunk(
    chunk: str,
    index: int,
    options: Optional[ChunkedRenderOptions] = None,
) -> ChunkRecord:
    return ChunkProcessor(options).process_chunk(chunk, index)
