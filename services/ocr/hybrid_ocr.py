"""Mathpix-first text extraction with a Tesseract fallback."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.config import settings
from core.logger import logger
from services.ocr.mathpix_client import MathpixClient, MathpixError, is_mathematical_content
from services.ocr.tesseract_ocr import OCRUnavailableError, TesseractOCR

EXTRACTION_FAILED_TEXT = "Could not extract text from image."
# Tesseract reports no page-level confidence through image_to_string
TESSERACT_CONFIDENCE = 0.8


@dataclass(frozen=True)
class OCRExtraction:
    text: str
    contains_math: bool
    confidence: float
    processing_method: str

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "contains_math": self.contains_math,
            "confidence": self.confidence,
            "processing_method": self.processing_method,
        }


class HybridOCR:
    """Try Mathpix, fall back to Tesseract, never raise for OCR failures."""

    def __init__(
        self,
        mathpix: Optional[MathpixClient] = None,
        tesseract: Optional[TesseractOCR] = None,
        min_confidence: Optional[float] = None,
    ) -> None:
        self.mathpix = mathpix or MathpixClient()
        self.tesseract = tesseract or TesseractOCR()
        self.min_confidence = (
            settings.mathpix_min_confidence if min_confidence is None else min_confidence
        )

    def extract_text(self, image: bytes) -> OCRExtraction:
        if self.mathpix.configured:
            try:
                result = self.mathpix.extract_text(image)
                if result.text and result.confidence > self.min_confidence:
                    return OCRExtraction(
                        text=result.text,
                        contains_math=result.contains_math,
                        confidence=result.confidence,
                        processing_method="mathpix",
                    )
                logger.info(
                    "Mathpix confidence %.2f below %.2f, falling back to Tesseract",
                    result.confidence, self.min_confidence,
                )
            except MathpixError as exc:
                logger.warning("Mathpix extraction failed, falling back to Tesseract: %s", exc)

        try:
            text = self.tesseract.image_to_text(image)
        except (OCRUnavailableError, ValueError) as exc:
            logger.error("Tesseract fallback failed: %s", exc)
            return OCRExtraction(EXTRACTION_FAILED_TEXT, False, 0.0, "failed")

        if not text:
            return OCRExtraction(EXTRACTION_FAILED_TEXT, False, 0.0, "failed")
        return OCRExtraction(
            text=text,
            contains_math=is_mathematical_content(text),
            confidence=TESSERACT_CONFIDENCE,
            processing_method="tesseract",
        )
