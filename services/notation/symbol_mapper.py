"""LaTeX command → Unicode glyph mapping.

Replacement is a single regex pass over ``\\name`` tokens. The token regex
consumes the *whole* alphabetic run after the backslash, so ``\\summary`` is
looked up as ``summary`` (unknown, left alone) and never triggers ``\\sum``.
"""
from __future__ import annotations

import re

GREEK_LOWER: dict[str, str] = {
    "alpha": "α", "beta": "β", "gamma": "γ", "delta": "δ",
    "epsilon": "ε", "varepsilon": "ε", "zeta": "ζ", "eta": "η",
    "theta": "θ", "vartheta": "ϑ", "iota": "ι", "kappa": "κ",
    "lambda": "λ", "mu": "μ", "nu": "ν", "xi": "ξ",
    "omicron": "ο", "pi": "π", "varpi": "ϖ", "rho": "ρ",
    "varrho": "ϱ", "sigma": "σ", "varsigma": "ς", "tau": "τ",
    "upsilon": "υ", "phi": "φ", "varphi": "φ", "chi": "χ",
    "psi": "ψ", "omega": "ω",
}

GREEK_UPPER: dict[str, str] = {
    "Gamma": "Γ", "Delta": "Δ", "Theta": "Θ", "Lambda": "Λ",
    "Xi": "Ξ", "Pi": "Π", "Sigma": "Σ", "Upsilon": "Υ",
    "Phi": "Φ", "Chi": "Χ", "Psi": "Ψ", "Omega": "Ω",
}

LOGIC: dict[str, str] = {
    "neg": "¬", "lnot": "¬", "land": "∧", "wedge": "∧",
    "lor": "∨", "vee": "∨", "forall": "∀", "exists": "∃",
    "nexists": "∄", "therefore": "∴", "because": "∵",
    "iff": "↔", "implies": "⇒",
}

SET_THEORY: dict[str, str] = {
    "in": "∈", "notin": "∉", "subset": "⊂", "supset": "⊃",
    "subseteq": "⊆", "supseteq": "⊇", "cup": "∪", "cap": "∩",
    "emptyset": "∅", "varnothing": "∅", "setminus": "∖",
    "oplus": "⊕", "ominus": "⊖", "otimes": "⊗", "odot": "⊙",
}

ARROWS: dict[str, str] = {
    "rightarrow": "→", "to": "→", "leftarrow": "←", "gets": "←",
    "leftrightarrow": "↔", "Rightarrow": "⇒", "Leftarrow": "⇐",
    "Leftrightarrow": "⇔", "mapsto": "↦", "longmapsto": "⟼",
    "longrightarrow": "⟶", "longleftarrow": "⟵",
    "hookleftarrow": "↩", "hookrightarrow": "↪", "uparrow": "↑",
    "downarrow": "↓", "updownarrow": "↕", "Uparrow": "⇑", "Downarrow": "⇓",
}

RELATIONS: dict[str, str] = {
    "leq": "≤", "le": "≤", "geq": "≥", "ge": "≥",
    "neq": "≠", "ne": "≠", "equiv": "≡", "approx": "≈",
    "sim": "∼", "simeq": "≃", "cong": "≅", "propto": "∝",
    "ll": "≪", "gg": "≫", "perp": "⊥", "parallel": "∥",
    "times": "×", "cdot": "·", "div": "÷", "pm": "±", "mp": "∓",
    "ast": "∗", "circ": "∘", "bullet": "∙",
}

CALCULUS: dict[str, str] = {
    "partial": "∂", "nabla": "∇", "infty": "∞",
    "int": "∫", "iint": "∬", "iiint": "∭", "oint": "∮",
    "sum": "∑", "prod": "∏", "coprod": "∐",
}

MISC: dict[str, str] = {
    "aleph": "ℵ", "hbar": "ℏ", "ell": "ℓ", "wp": "℘", "Re": "ℜ", "Im": "ℑ",
    "angle": "∠", "triangle": "△", "square": "□", "diamond": "◊",
    "star": "⋆", "dagger": "†", "ddagger": "‡",
    "dots": "…", "ldots": "…", "cdots": "⋯", "vdots": "⋮", "ddots": "⋱",
    "langle": "⟨", "rangle": "⟩", "lfloor": "⌊", "rfloor": "⌋",
    "lceil": "⌈", "rceil": "⌉",
}

NUMBER_SETS: dict[str, str] = {
    "N": "ℕ", "Z": "ℤ", "Q": "ℚ", "R": "ℝ", "C": "ℂ",
    "H": "ℍ", "P": "ℙ", "F": "𝔽", "A": "𝔸", "K": "𝕂",
}

SYMBOL_MAP: dict[str, str] = {
    **GREEK_LOWER,
    **GREEK_UPPER,
    **LOGIC,
    **SET_THEORY,
    **ARROWS,
    **RELATIONS,
    **CALCULUS,
    **MISC,
}

GLYPHS = frozenset(SYMBOL_MAP.values()) | frozenset(NUMBER_SETS.values())
_GLYPH_CLASS = "[" + "".join(sorted(re.escape(g) for g in GLYPHS)) + "]"

# \mathbb{R} first, then any \name; [A-Za-z]+ is greedy so the whole name is the key
_TOKEN_RE = re.compile(r"\\mathbb\{([A-Za-z])\}|\\([A-Za-z]+)")

_ARTIFACT_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # \{α\}, \{α}, {α\}
    (re.compile(r"\\\{(" + _GLYPH_CLASS + r")\\\}"), r"\1"),
    (re.compile(r"\\\{(" + _GLYPH_CLASS + r")\}"), r"\1"),
    (re.compile(r"\{(" + _GLYPH_CLASS + r")\\\}"), r"\1"),
    # {α} unless it is a command argument such as \frac{α}
    (re.compile(r"(?<![A-Za-z])\{(" + _GLYPH_CLASS + r")\}"), r"\1"),
    # \α
    (re.compile(r"\\(" + _GLYPH_CLASS + r")"), r"\1"),
]


def _replace_token(match: re.Match[str]) -> str:
    if match.group(1) is not None:
        return NUMBER_SETS.get(match.group(1), match.group(0))
    return SYMBOL_MAP.get(match.group(2), match.group(0))


def _collapse_artifacts(text: str) -> str:
    """Strip brace/backslash debris around glyphs until nothing changes."""
    previous = None
    while previous != text:
        previous = text
        for pattern, replacement in _ARTIFACT_PATTERNS:
            text = pattern.sub(replacement, text)
    return text


def map_symbols(text: str) -> str:
    """Replace known LaTeX commands with their Unicode glyphs.

    Unknown commands pass through untouched. Applying the function twice
    yields the same result as applying it once.
    """
    if not text:
        return text
    converted = _TOKEN_RE.sub(_replace_token, text)
    return _collapse_artifacts(converted)
