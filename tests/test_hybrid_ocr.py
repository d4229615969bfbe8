"""Tests for Mathpix-first OCR with Tesseract fallback."""
from __future__ import annotations

from services.ocr.hybrid_ocr import EXTRACTION_FAILED_TEXT, HybridOCR
from services.ocr.mathpix_client import MathpixError, MathpixResult
from services.ocr.tesseract_ocr import OCRUnavailableError


class FakeMathpix:
    def __init__(self, result=None, error=None, configured=True) -> None:
        self.result = result
        self.error = error
        self.configured = configured
        self.calls = 0

    def extract_text(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class FakeTesseract:
    def __init__(self, text="", error=None) -> None:
        self.text = text
        self.error = error

    def image_to_text(self, image):
        if self.error is not None:
            raise self.error
        return self.text


def _ocr(mathpix, tesseract) -> HybridOCR:
    return HybridOCR(mathpix=mathpix, tesseract=tesseract, min_confidence=0.5)


class TestHybridOCR:
    """Test cases for provider fallback."""

    def test_mathpix_used_when_confident(self) -> None:
        mathpix = FakeMathpix(MathpixResult("x = 2", "x=2", 0.9, True))
        extraction = _ocr(mathpix, FakeTesseract("ignored")).extract_text(b"img")
        assert extraction.processing_method == "mathpix"
        assert extraction.text == "x = 2"
        assert extraction.confidence == 0.9

    def test_low_confidence_falls_back(self) -> None:
        mathpix = FakeMathpix(MathpixResult("x", "x", 0.3, False))
        extraction = _ocr(mathpix, FakeTesseract("sin x + 1")).extract_text(b"img")
        assert extraction.processing_method == "tesseract"
        assert extraction.confidence == 0.8
        assert extraction.contains_math

    def test_mathpix_error_falls_back(self) -> None:
        mathpix = FakeMathpix(error=MathpixError("Mathpix API error: 500"))
        extraction = _ocr(mathpix, FakeTesseract("plain words")).extract_text(b"img")
        assert extraction.processing_method == "tesseract"
        assert extraction.text == "plain words"
        assert not extraction.contains_math

    def test_unconfigured_mathpix_skipped(self) -> None:
        mathpix = FakeMathpix(configured=False)
        extraction = _ocr(mathpix, FakeTesseract("hello")).extract_text(b"img")
        assert mathpix.calls == 0
        assert extraction.processing_method == "tesseract"

    def test_tesseract_unavailable(self) -> None:
        mathpix = FakeMathpix(configured=False)
        tesseract = FakeTesseract(error=OCRUnavailableError("missing"))
        extraction = _ocr(mathpix, tesseract).extract_text(b"img")
        assert extraction.processing_method == "failed"
        assert extraction.text == EXTRACTION_FAILED_TEXT
        assert extraction.confidence == 0.0

    def test_tesseract_empty(self) -> None:
        extraction = _ocr(FakeMathpix(configured=False), FakeTesseract("")).extract_text(b"img")
        assert extraction.processing_method == "failed"
        assert extraction.to_dict()["contains_math"] is False
