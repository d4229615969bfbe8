"""Render LaTeX math as plain Unicode text for exports that cannot typeset."""
from __future__ import annotations

import re

from services.notation.symbol_mapper import map_symbols

UNICODE_FRACTIONS: dict[str, str] = {
    "1/2": "½", "1/3": "⅓", "2/3": "⅔", "1/4": "¼", "3/4": "¾",
    "1/5": "⅕", "2/5": "⅖", "3/5": "⅗", "4/5": "⅘", "1/6": "⅙",
    "5/6": "⅚", "1/7": "⅐", "1/8": "⅛", "3/8": "⅜", "5/8": "⅝",
    "7/8": "⅞", "1/9": "⅑", "1/10": "⅒",
}

SUPERSCRIPTS: dict[str, str] = {
    "0": "⁰", "1": "¹", "2": "²", "3": "³", "4": "⁴", "5": "⁵",
    "6": "⁶", "7": "⁷", "8": "⁸", "9": "⁹", "+": "⁺", "-": "⁻",
    "=": "⁼", "(": "⁽", ")": "⁾", "n": "ⁿ", "i": "ⁱ",
}

SUBSCRIPTS: dict[str, str] = {
    "0": "₀", "1": "₁", "2": "₂", "3": "₃", "4": "₄", "5": "₅",
    "6": "₆", "7": "₇", "8": "₈", "9": "₉", "+": "₊", "-": "₋",
    "=": "₌", "(": "₍", ")": "₎", "a": "ₐ", "e": "ₑ", "h": "ₕ",
    "i": "ᵢ", "j": "ⱼ", "k": "ₖ", "l": "ₗ", "m": "ₘ", "n": "ₙ",
    "o": "ₒ", "p": "ₚ", "r": "ᵣ", "s": "ₛ", "t": "ₜ", "u": "ᵤ",
    "v": "ᵥ", "x": "ₓ",
}

FUNCTION_NAMES = (
    "sinh", "cosh", "tanh", "sin", "cos", "tan", "sec", "csc", "cot",
    "log", "ln", "exp", "det", "dim", "ker", "gcd", "max", "min",
    "sup", "inf", "lim", "arg", "deg",
)

MATRIX_BRACKETS: dict[str, tuple[str, str, str]] = {
    # env: (open, row separator, close)
    "pmatrix": ("⎛ ", " ⎞\n⎜ ", " ⎠"),
    "bmatrix": ("⎡ ", " ⎤\n⎢ ", " ⎦"),
    "vmatrix": ("| ", " |\n| ", " |"),
}

_SEGMENT_RE = re.compile(
    r"\$\$([^$]+)\$\$|\$([^$]+)\$|\\\[([^\]]+)\\\]|\\\(([^)]+)\\\)"
)

_MATRIX_RE = re.compile(r"\\begin\{([pbv]matrix)\}([\s\S]*?)\\end\{\1\}")
_FRAC_RE = re.compile(r"\\frac\{([^{}]+)\}\{([^{}]+)\}")
_NTH_ROOT_RE = re.compile(r"\\sqrt\[([^\]]+)\]\{([^{}]+)\}")
_SQRT_RE = re.compile(r"\\sqrt\{([^{}]+)\}")
_EMPTY_SCRIPT_RE = re.compile(r"([A-Za-z0-9])[_^](?=\s|$|[^{A-Za-z0-9\\])")
_SUPERSCRIPT_RE = re.compile(r"\^(\{[^{}]+\}|\\[A-Za-z]+|[A-Za-z0-9])")
_SUBSCRIPT_RE = re.compile(r"_(\{[^{}]+\}|\\[A-Za-z]+|[A-Za-z0-9])")
_FUNCTION_RE = re.compile(r"\\(" + "|".join(FUNCTION_NAMES) + r")(?![A-Za-z])")
_GROUP_RE = re.compile(r"\{([^{}]*)\}")


def _script_body(token: str) -> str:
    return token[1:-1] if token.startswith("{") else token


def _render_script(token: str, table: dict[str, str], marker: str) -> str:
    """Unicode script characters when all exist, otherwise keep the marker."""
    body = render_latex_fragment(_script_body(token))
    if all(ch in table for ch in body):
        return "".join(table[ch] for ch in body)
    return f"{marker}{body}" if len(body) == 1 else f"{marker}({body})"


def _render_matrix(match: re.Match[str]) -> str:
    opening, separator, closing = MATRIX_BRACKETS[match.group(1)]
    rows = []
    for row in match.group(2).split(r"\\"):
        if not row.strip():
            continue
        cells = [render_latex_fragment(cell.strip()) for cell in row.split("&")]
        rows.append("  ".join(cells))
    return opening + separator.join(rows) + closing


def _render_fraction(match: re.Match[str]) -> str:
    numerator = render_latex_fragment(match.group(1))
    denominator = render_latex_fragment(match.group(2))
    glyph = UNICODE_FRACTIONS.get(f"{numerator}/{denominator}")
    if glyph:
        return glyph
    return f"({numerator})/({denominator})"


def render_latex_fragment(latex: str) -> str:
    """Render a single math fragment (delimiters already removed)."""
    text = _MATRIX_RE.sub(_render_matrix, latex)
    text = _FRAC_RE.sub(_render_fraction, text)
    text = _NTH_ROOT_RE.sub(
        lambda m: f"{render_latex_fragment(m.group(1))}√({render_latex_fragment(m.group(2))})",
        text,
    )
    text = _SQRT_RE.sub(lambda m: f"√({render_latex_fragment(m.group(1))})", text)

    # A_ / B^ without an argument carry no meaning in plain text
    text = _EMPTY_SCRIPT_RE.sub(r"\1", text)
    text = _SUPERSCRIPT_RE.sub(
        lambda m: _render_script(m.group(1), SUPERSCRIPTS, "^"),
        text,
    )
    text = _SUBSCRIPT_RE.sub(
        lambda m: _render_script(m.group(1), SUBSCRIPTS, "_"),
        text,
    )

    text = _FUNCTION_RE.sub(r"\1", text)
    text = map_symbols(text)

    # Leftover markup
    text = _GROUP_RE.sub(r"\1", text)
    text = re.sub(r"\\left\s*([(\[|])", r"\1", text)
    text = re.sub(r"\\right\s*([)\]|])", r"\1", text)
    text = re.sub(r"\\q?quad(?![A-Za-z])", " ", text)
    text = text.replace(r"\;", " ").replace(r"\,", " ").replace(r"\!", "")
    return text


def render_math_notation(content: str) -> str:
    """Convert every math segment and the text between segments to Unicode.

    Each part is rendered exactly once, so script markers kept by one pass
    (``x^α``) are not stripped by a second.
    """
    parts: list[str] = []
    last = 0
    for match in _SEGMENT_RE.finditer(content):
        parts.append(render_latex_fragment(content[last:match.start()]))
        body = next(group for group in match.groups() if group is not None)
        parts.append(render_latex_fragment(body.strip()))
        last = match.end()
    parts.append(render_latex_fragment(content[last:]))
    return "".join(parts)
