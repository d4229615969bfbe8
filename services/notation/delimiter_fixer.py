"""Tell math ``$…$`` apart from currency amounts written with ``$`` and rewrite
math into MathJax's ``\\(…\\)`` / ``\\[…\\]`` delimiters."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable

from core.logger import logger
from services.notation.symbol_mapper import (
    ARROWS,
    CALCULUS,
    GREEK_LOWER,
    GREEK_UPPER,
    LOGIC,
    MISC,
    NUMBER_SETS,
    RELATIONS,
    SET_THEORY,
)
from services.notation.unicode_renderer import SUBSCRIPTS, SUPERSCRIPTS

CURRENCY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\$\d+\s*(?:million|billion|thousand|k)\b", re.IGNORECASE),
    re.compile(r"\$\d+\.?\d*\s*(?:USD|dollars?|bucks?)\b", re.IGNORECASE),
    re.compile(r"(?:USD|dollars?)\s*\$\d+\.?\d*\b", re.IGNORECASE),
    re.compile(r"\$\d{1,3}(?:,\d{3})*(?:\.\d{2})?(?![\d,])|\$\d+(?:\.\d+)?\b"),
)

MATH_INDICATORS = re.compile(
    r"[\^_{}\\]|\b(?:sin|cos|tan|log|ln|exp|sqrt|sum|int|lim|alpha|beta|gamma|theta"
    r"|pi|sigma|mu|lambda|delta|epsilon|omega|forall|exists|in|cup|cap|subset|emptyset)\b"
)

_PLACEHOLDER = "CURRENCYPLACEHOLDER{}X"
_PLACEHOLDER_RE = re.compile(r"CURRENCYPLACEHOLDER(\d+)X")
_DOLLAR_PAIR_RE = re.compile(r"\$([^$\n]+)\$")
_DISPLAY_PAIR_RE = re.compile(r"\$\$([^$]+)\$\$")
_MATH_SPAN_RE = re.compile(r"\\\(.*?\\\)|\\\[.*?\\\]", re.DOTALL)
_COMMAND_RUN_RE = re.compile(
    r"\\[A-Za-z]+(?:\{[^{}]*\})*(?:[ \t]+\\[A-Za-z]+(?:\{[^{}]*\})*)*"
)
_BARE_DOLLAR_RE = re.compile(r"(?<!\\)\$")


def _build_unicode_to_latex() -> dict[str, str]:
    table: dict[str, str] = {}
    # First table wins where several commands share a glyph (→ is \rightarrow, not \to)
    for commands in (ARROWS, RELATIONS, SET_THEORY, CALCULUS, GREEK_LOWER, GREEK_UPPER, LOGIC, MISC):
        for name, glyph in commands.items():
            table.setdefault(glyph, "\\" + name)
    for letter, glyph in NUMBER_SETS.items():
        table.setdefault(glyph, f"\\mathbb{{{letter}}}")
    for char, glyph in SUPERSCRIPTS.items():
        table.setdefault(glyph, "^" + char)
    for char, glyph in SUBSCRIPTS.items():
        table.setdefault(glyph, "_" + char)
    table["√"] = "\\sqrt"
    table["°"] = "^\\circ"
    return table


UNICODE_TO_LATEX: dict[str, str] = _build_unicode_to_latex()
_GLYPH_RE = re.compile(
    "|".join(re.escape(g) for g in sorted(UNICODE_TO_LATEX, key=len, reverse=True))
)


@dataclass
class DelimiterAnalysis:
    is_valid: bool
    issues: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    currency_count: int = 0
    math_expressions: int = 0
    ambiguous_dollars: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "issues": self.issues,
            "suggestions": self.suggestions,
            "currency_count": self.currency_count,
            "math_expressions": self.math_expressions,
            "ambiguous_dollars": self.ambiguous_dollars,
        }


def protect_currency(text: str) -> tuple[str, list[str]]:
    """Swap currency amounts for numbered placeholders."""
    saved: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        saved.append(match.group(0))
        return _PLACEHOLDER.format(len(saved) - 1)

    for pattern in CURRENCY_PATTERNS:
        text = pattern.sub(_stash, text)
    return text, saved


def restore_currency(text: str, saved: list[str]) -> str:
    return _PLACEHOLDER_RE.sub(lambda m: saved[int(m.group(1))], text)


def validate_math_delimiters(text: str) -> DelimiterAnalysis:
    protected, saved = protect_currency(text)
    analysis = DelimiterAnalysis(is_valid=True, currency_count=len(saved))

    for match in _DOLLAR_PAIR_RE.finditer(protected):
        body = match.group(1)
        if MATH_INDICATORS.search(body):
            analysis.math_expressions += 1
        elif not re.fullmatch(r"\d+\.?\d*", body.strip()):
            pair = restore_currency(match.group(0), saved)
            analysis.ambiguous_dollars += 1
            analysis.issues.append(f"Ambiguous dollar expression: {pair}")
            analysis.suggestions.append(
                f'If "{pair}" is math, add LaTeX symbols. If not, consider rewording.'
            )

    if protected.count("$") % 2:
        analysis.issues.append("Odd number of math delimiters ($)")
        analysis.suggestions.append("Close the last inline math expression with $")

    analysis.is_valid = not analysis.issues
    logger.debug(
        "Delimiter analysis: currency=%d math=%d ambiguous=%d",
        analysis.currency_count, analysis.math_expressions, analysis.ambiguous_dollars,
    )
    return analysis


def _glyph_to_latex(match: re.Match[str]) -> str:
    latex = UNICODE_TO_LATEX[match.group(0)]
    # Scripts attach to the preceding token, commands need separating spaces
    return f" {latex} " if latex.startswith("\\") else latex


def _outside_math(text: str, rewrite: Callable[[str], str]) -> str:
    """Apply ``rewrite`` to the parts of ``text`` outside ``\\(…\\)`` and ``\\[…\\]``."""
    parts: list[str] = []
    last = 0
    for span in _MATH_SPAN_RE.finditer(text):
        parts.append(rewrite(text[last:span.start()]))
        parts.append(span.group(0))
        last = span.end()
    parts.append(rewrite(text[last:]))
    return "".join(parts)


def _convert_dollar_pair(match: re.Match[str]) -> str:
    body = match.group(1)
    if MATH_INDICATORS.search(body):
        return f"\\({body.strip()}\\)"
    return match.group(0)


def _wrap_commands(text: str) -> str:
    return _COMMAND_RUN_RE.sub(lambda m: f"\\({m.group(0)}\\)", text)


def sanitize_math_and_currency(text: str) -> str:
    """Rewrite math into ``\\(…\\)``/``\\[…\\]`` while leaving currency alone.

    Currency amounts are parked behind placeholders, Unicode math glyphs are
    turned back into LaTeX, ``$$…$$`` becomes display math, ``$…$`` pairs
    with LaTeX indicators become inline math (other pairs stay as text), and
    bare command runs outside any math span are wrapped as inline math.
    """
    protected, saved = protect_currency(text)

    converted = _GLYPH_RE.sub(_glyph_to_latex, protected)
    converted = _DISPLAY_PAIR_RE.sub(lambda m: f"\\[{m.group(1).strip()}\\]", converted)
    converted = _DOLLAR_PAIR_RE.sub(_convert_dollar_pair, converted)
    converted = _outside_math(converted, _wrap_commands)
    converted = re.sub(r"[ \t]+", " ", converted).strip()

    logger.debug("Sanitized math delimiters, protected %d currency amounts", len(saved))
    return restore_currency(converted, saved)


def preprocess_for_mathjax(text: str) -> str:
    """Sanitize delimiters, then escape every ``$`` left outside math.

    After sanitization any remaining ``$`` is currency or plain text, so it
    is written as ``\\$`` to keep MathJax from pairing it.
    """
    sanitized = sanitize_math_and_currency(text)
    return _outside_math(sanitized, lambda part: _BARE_DOLLAR_RE.sub(r"\\$", part))
