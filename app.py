"""Application entry point: FastAPI service for notation cleanup and chunked export."""
from __future__ import annotations

import dataclasses
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, File, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.config import settings
from core.logger import init_logging, logger
from services.exporters.html_writer import HTMLWriter
from services.notation.delimiter_fixer import preprocess_for_mathjax, validate_math_delimiters
from services.notation.latex_validator import LatexValidator, StrictValidationError
from services.notation.symbol_mapper import map_symbols
from services.notation.unicode_renderer import render_math_notation
from services.ocr.hybrid_ocr import HybridOCR
from services.ocr.mathpix_client import MathpixClient, MathpixError
from services.ocr.tesseract_ocr import TesseractOCR
from services.rendering.chunk_processor import ChunkedRenderOptions
from services.rendering.chunked_html import render_document_in_chunks
from utils.file_utils import ensure_directories


class TextRequest(BaseModel):
    text: str


class RenderOptionsModel(BaseModel):
    words_per_chunk: Optional[int] = Field(default=None, ge=1)
    max_retries: Optional[int] = Field(default=None, ge=1)
    validate_math: Optional[bool] = None
    strict_mode: Optional[bool] = None
    log_progress: Optional[bool] = None


class ChunkedRenderRequest(BaseModel):
    content: str
    document_name: str = "Document"
    options: Optional[RenderOptionsModel] = None
    save: bool = False


def build_render_options(overrides: Optional[RenderOptionsModel]) -> ChunkedRenderOptions:
    """Settings defaults with any request-level overrides applied."""
    options = ChunkedRenderOptions.from_settings()
    if overrides is None:
        return options
    changes = {k: v for k, v in overrides.model_dump().items() if v is not None}
    return dataclasses.replace(options, **changes)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"status": "error", "message": message}, status_code=status_code)


def create_app(
    ocr: Optional[HybridOCR] = None,
    mathpix: Optional[MathpixClient] = None,
    html_writer: Optional[HTMLWriter] = None,
) -> FastAPI:
    """Create FastAPI app with notation, rendering and OCR routes."""
    app = FastAPI(title="Mind Profiler Notation Service", version="0.1.0")

    validator = LatexValidator()
    mathpix_client = mathpix or MathpixClient()

    def _ocr() -> HybridOCR:
        nonlocal ocr
        if ocr is None:
            ocr = HybridOCR(mathpix=mathpix_client, tesseract=TesseractOCR())
        return ocr

    def _writer() -> HTMLWriter:
        nonlocal html_writer
        if html_writer is None:
            html_writer = HTMLWriter()
        return html_writer

    @app.on_event("startup")
    async def startup_event() -> None:
        init_logging()
        ensure_directories()
        logger.info("FastAPI service started")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/notation/symbols")
    async def symbols(request: TextRequest) -> dict[str, str]:
        return {"text": map_symbols(request.text)}

    @app.post("/api/notation/unicode")
    async def unicode_text(request: TextRequest) -> dict[str, str]:
        return {"text": render_math_notation(request.text)}

    @app.post("/api/notation/validate")
    async def validate(request: TextRequest) -> dict[str, Any]:
        return validator.validate(request.text).to_dict()

    @app.post("/api/notation/delimiters")
    async def delimiters(request: TextRequest) -> dict[str, Any]:
        return validate_math_delimiters(request.text).to_dict()

    @app.post("/api/notation/mathjax")
    async def mathjax(request: TextRequest) -> dict[str, str]:
        """Rewrite $ math into MathJax delimiters, escaping currency."""
        return {"text": preprocess_for_mathjax(request.text)}

    @app.post("/api/render/chunked")
    async def render_chunked(request: ChunkedRenderRequest) -> JSONResponse:
        """Chunk, validate and sanitize a document and return print-ready HTML."""
        options = build_render_options(request.options)
        try:
            html, result = render_document_in_chunks(request.content, request.document_name, options)
        except StrictValidationError as exc:
            logger.warning("Strict validation rejected %s: %s", request.document_name, exc)
            return _error(str(exc), 422)

        body: dict[str, object] = {
            "status": "success",
            "html": html,
            "success_rate": result.success_rate,
            "total_errors": result.total_errors,
            "total_warnings": result.total_warnings,
            "chunks": [chunk.to_dict() for chunk in result.chunks],
        }
        if request.save:
            body["path"] = str(_writer().write_html(html, request.document_name))
        return JSONResponse(body)

    @app.post("/api/ocr")
    async def ocr_upload(file: UploadFile = File(...)) -> JSONResponse:
        """Extract text from an uploaded image (Mathpix, then Tesseract)."""
        content = await file.read()
        if not content:
            return _error("Uploaded file is empty", 400)
        try:
            extraction = _ocr().extract_text(content)
        except Exception as exc:  # noqa: BLE001
            logger.exception("OCR failed: %s", exc)
            return _error(str(exc), 500)
        return JSONResponse(extraction.to_dict())

    @app.post("/api/ocr/mathpix")
    async def mathpix_upload(file: UploadFile = File(...)) -> JSONResponse:
        content = await file.read()
        if not content:
            return _error("Uploaded file is empty", 400)
        if not mathpix_client.configured:
            return _error("Mathpix API credentials not configured", 503)
        try:
            mime_type = file.content_type if (file.content_type or "").startswith("image/") else None
            result = mathpix_client.extract_text(content, mime_type)
        except MathpixError as exc:
            logger.warning("Mathpix OCR failed: %s", exc)
            return _error(str(exc), 502)
        return JSONResponse(result.to_dict())

    return app


def main() -> None:
    """Start the API server."""
    init_logging()
    ensure_directories()
    logger.info("Starting FastAPI server at %s:%s", settings.host, settings.port)
    uvicorn.run(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
