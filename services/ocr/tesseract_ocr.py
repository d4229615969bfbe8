"""Tesseract OCR fallback for plain text extraction."""
from __future__ import annotations

import io
import shutil
from typing import Optional

import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError

from core.config import settings
from core.logger import logger


class OCRUnavailableError(RuntimeError):
    """No usable Tesseract installation."""


class TesseractOCR:
    """Extract text from images with Tesseract."""

    def __init__(self, tesseract_cmd: Optional[str] = None, lang: str = "eng") -> None:
        self.lang = lang
        cmd = tesseract_cmd or settings.tesseract_cmd or shutil.which("tesseract")
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd
            logger.info("Tesseract initialized: %s", cmd)
        else:
            logger.warning("Tesseract OCR not found. OCR fallback will not work.")

    def image_to_text(self, image: bytes) -> str:
        try:
            pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as exc:
            raise OCRUnavailableError(
                "Tesseract OCR is not installed. Set TESSERACT_CMD or add tesseract to PATH."
            ) from exc

        try:
            with Image.open(io.BytesIO(image)) as img:
                prepared = ImageOps.grayscale(img.convert("RGB"))
                text = pytesseract.image_to_string(prepared, lang=self.lang)
        except UnidentifiedImageError as exc:
            raise ValueError("Could not open image for OCR") from exc

        logger.info("Tesseract extracted %d characters", len(text))
        return text.strip()
