"""Drive the splitter and chunk processor over a whole document."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from core.logger import logger, progress_logger
from services.rendering.chunk_processor import ChunkedRenderOptions, ChunkProcessor, ChunkRecord
from services.rendering.chunk_splitter import split_into_chunks

ProgressCallback = Callable[[ChunkRecord, int], None]

CHUNK_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class DocumentRenderResult:
    chunks: tuple[ChunkRecord, ...]
    processed_content: str
    total_errors: int
    total_warnings: int
    success_rate: float

    @property
    def successful_chunks(self) -> int:
        return sum(1 for chunk in self.chunks if chunk.success)

    def to_dict(self) -> dict[str, object]:
        return {
            "chunks": [chunk.to_dict() for chunk in self.chunks],
            "processed_content": self.processed_content,
            "total_errors": self.total_errors,
            "total_warnings": self.total_warnings,
            "success_rate": self.success_rate,
        }


def iter_processed_chunks(
    content: str,
    options: Optional[ChunkedRenderOptions] = None,
) -> Iterator[ChunkRecord]:
    """Yield chunk records one at a time, in document order.

    Stopping iteration early abandons the remaining chunks; the records
    already yielded stay valid.
    """
    opts = options or ChunkedRenderOptions()
    chunks = split_into_chunks(content, opts.words_per_chunk)
    if opts.log_progress:
        progress_logger.info(
            "Starting chunked processing: %d chunks of ~%d words each",
            len(chunks), opts.words_per_chunk,
        )

    processor = ChunkProcessor(opts)
    for index, chunk in enumerate(chunks):
        record = processor.process_chunk(chunk, index)
        if opts.log_progress:
            progress_logger.info(
                "Progress: %.1f%% (%d/%d chunks processed)",
                (index + 1) / len(chunks) * 100, index + 1, len(chunks),
            )
        yield record


def summarize_chunks(records: list[ChunkRecord] | tuple[ChunkRecord, ...]) -> DocumentRenderResult:
    records = tuple(records)
    successful = sum(1 for r in records if r.success)
    return DocumentRenderResult(
        chunks=records,
        processed_content=CHUNK_SEPARATOR.join(r.processed_content for r in records),
        total_errors=sum(len(r.errors) for r in records),
        total_warnings=sum(len(r.warnings) for r in records),
        success_rate=successful / len(records) if records else 0.0,
    )


def process_all_chunks(
    content: str,
    options: Optional[ChunkedRenderOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> DocumentRenderResult:
    """Split ``content`` and process every chunk sequentially."""
    opts = options or ChunkedRenderOptions()
    records: list[ChunkRecord] = []
    for record in iter_processed_chunks(content, opts):
        records.append(record)
        if on_progress is not None:
            on_progress(record, len(records))

    result = summarize_chunks(records)
    if opts.log_progress:
        logger.info("Chunked processing complete: %.1f%% success rate", result.success_rate * 100)
        logger.info("Total: %d errors, %d warnings", result.total_errors, result.total_warnings)
    return result
