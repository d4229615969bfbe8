"""Mathpix OCR client and OCR text formatting."""
from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from core.config import settings
from core.logger import logger

LATEX_SEPARATOR = "\n\n--- LaTeX Representation ---\n"

# Applied in order; later rules rely on the spacing earlier ones introduce
_FORMAT_RULES: list[tuple[re.Pattern[str], str]] = [
    # \(\backslash(472 + 389=\backslash\) -> 472 + 389
    (re.compile(r"\\\(\\backslash\(([^=]+)=\\backslash\\\)"), r"\1"),
    (re.compile(r"\\\\\(Iqquad\)"), " "),
    # Backslash artifacts
    (re.compile(r"\\\\backslash\\"), r"\\"),
    (re.compile(r"\\backslash"), ""),
    (re.compile(r"\\\(\\\\\("), "("),
    (re.compile(r"\\\\\)\\\)"), ")"),
    # Spacing commands
    (re.compile(r"\\\\quad"), " "),
    (re.compile(r"\\Iqquad"), " "),
    (re.compile(r"\\\\I"), ""),
    (re.compile(r"\\quad"), " "),
    # Run-together words and numbers
    (re.compile(r"([a-z])([A-Z])"), r"\1 \2"),
    (re.compile(r"([0-9])([A-Za-z])"), r"\1 \2"),
    (re.compile(r"([a-z])([0-9])"), r"\1 \2"),
    # Line breaks after math and sentences
    (re.compile(r"\\\]"), "\\\\]\n\n"),
    (re.compile(r"\\\)"), "\\\\)\n\n"),
    (re.compile(r"([.!?])\s*([A-Z0-9])"), "\\1\n\n\\2"),
    # Problem numbers
    (re.compile(r"(\d+)\.\s*([A-Za-z])"), "\n\n\\1. \\2"),
    (re.compile(r"([a-z])\s*(\d+\.\s*[A-Z])"), "\\1\n\n\\2"),
    # Operators
    (re.compile(r"([a-zA-Z0-9])\s*=\s*([a-zA-Z0-9])"), r"\1 = \2"),
    (re.compile(r"([0-9])\s*\+\s*([0-9a-zA-Z])"), r"\1 + \2"),
    (re.compile(r"([0-9])\s*-\s*([0-9a-zA-Z])"), r"\1 - \2"),
    (re.compile(r"([0-9])\s*\*\s*([0-9a-zA-Z])"), r"\1 × \2"),
    (re.compile(r"([0-9])\s*/\s*([0-9a-zA-Z])"), r"\1 ÷ \2"),
    # Display and inline math delimiters
    (re.compile(r"\\\[\s*"), "\n\n\\\\[\n"),
    (re.compile(r"\s*\\\]"), "\n\\\\]\n\n"),
    (re.compile(r"\\\(\s*"), r"\\("),
    (re.compile(r"\s*\\\)"), r"\\)"),
    # Readability
    (re.compile(r"([a-z])([A-Z][a-z])"), r"\1 \2"),
    (re.compile(r"([a-z])(\d+\.)"), "\\1\n\n\\2"),
    (re.compile(r"([.?!])([A-Z])"), "\\1\n\n\\2"),
    (re.compile(r"([a-z])([+\-=])"), r"\1 \2"),
    (re.compile(r"([+\-=])([a-z])"), r"\1 \2"),
]

MATH_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\$.*\$"),
    re.compile(r"\\[a-zA-Z]+"),
    re.compile(r"[∑∏∫∂∞≠≤≥±×÷√πθαβγδ]"),
    re.compile(r"\b(sin|cos|tan|log|ln|exp|lim|max|min|sum|integral)\b", re.IGNORECASE),
    re.compile(r"\d+[+\-×÷]\d+"),
    re.compile(r"\b\d+[\^*]\d+\b"),
    re.compile(r"\([^)]*[xyz][^)]*\)"),
    re.compile(r"\b[fgh]\([xyz]\)"),
)


class MathpixError(RuntimeError):
    """Mathpix OCR could not produce text."""


@dataclass(frozen=True)
class MathpixResult:
    text: str
    latex: str
    confidence: float
    contains_math: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "latex": self.latex,
            "confidence": self.confidence,
            "contains_math": self.contains_math,
        }


def format_math_text(raw_text: str) -> str:
    """Clean Mathpix OCR output into readable text with LaTeX fragments."""
    formatted = raw_text
    for pattern, replacement in _FORMAT_RULES:
        formatted = pattern.sub(replacement, formatted)
    formatted = re.sub(r"\n{3,}", "\n\n", formatted)
    formatted = formatted.strip()
    return re.sub(r"[ \t]+", " ", formatted)


def is_mathematical_content(text: str) -> bool:
    return any(pattern.search(text) for pattern in MATH_PATTERNS)


def detect_mime_type(data: bytes) -> str:
    """Sniff the image type from its magic bytes (PNG when unknown)."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:2] == b"\xff\xd8":
        return "image/jpeg"
    if data[:3] == b"GIF":
        return "image/gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


class MathpixClient:
    """Thin wrapper around the Mathpix ``/v3/text`` endpoint."""

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.app_id = app_id if app_id is not None else settings.mathpix_app_id
        self.app_key = app_key if app_key is not None else settings.mathpix_app_key
        self.api_url = api_url or settings.mathpix_api_url
        self.timeout = timeout if timeout is not None else settings.ocr_timeout
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.app_id and self.app_key)

    def extract_text(self, image: bytes, mime_type: Optional[str] = None) -> MathpixResult:
        if not self.configured:
            raise MathpixError("Mathpix API credentials not configured")

        mime_type = mime_type or detect_mime_type(image)
        payload = {
            "src": f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}",
            "formats": ["text", "latex_styled"],
            "data_options": {"include_asciimath": True, "include_latex": True},
        }
        headers = {"app_id": self.app_id, "app_key": self.app_key}

        logger.info("[mathpix] Processing image (%d bytes, %s)", len(image), mime_type)
        try:
            if self._client is not None:
                resp = self._client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
            else:
                resp = httpx.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.error("[mathpix] Request failed: %s", exc)
            raise MathpixError(f"Mathpix OCR failed: {exc}") from exc

        if resp.is_error:
            logger.error("[mathpix] API error: %s - %s", resp.status_code, resp.text[:200])
            raise MathpixError(f"Mathpix API error: {resp.status_code}")

        data = resp.json()
        if data.get("error"):
            raise MathpixError(f"Mathpix error: {data['error']}")

        text = data.get("text") or ""
        latex = data.get("latex_styled") or data.get("latex") or ""
        extracted = text
        if latex and latex != text:
            extracted += LATEX_SEPARATOR + latex
        if not extracted.strip():
            raise MathpixError("No text extracted from image")

        confidence = float(data.get("confidence") or 0.0)
        formatted = format_math_text(extracted.strip())
        logger.info(
            "[mathpix] Extracted %d characters (confidence=%.2f)", len(formatted), confidence
        )
        return MathpixResult(
            text=formatted,
            latex=latex,
            confidence=confidence,
            contains_math=is_mathematical_content(formatted),
        )
