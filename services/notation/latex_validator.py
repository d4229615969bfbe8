"""LaTeX validation and sanitization.

The validator never raises on bad notation: every problem is reported in the
returned ``ValidationResult`` and a best-effort sanitized copy is produced.
The only exception path is ``validate_and_sanitize_math(..., strict_mode=True)``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from core.config import settings
from core.logger import logger


class ErrorKind(str, Enum):
    SYNTAX = "syntax"
    MISSING_ARGUMENT = "missing_argument"
    INVALID_COMMAND = "invalid_command"
    UNCLOSED_BRACE = "unclosed_brace"
    MALFORMED_SUBSCRIPT = "malformed_subscript"
    MALFORMED_SUPERSCRIPT = "malformed_superscript"


@dataclass(frozen=True)
class NotationError:
    kind: ErrorKind
    message: str
    position: int
    context: str
    suggestion: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "position": self.position,
            "context": self.context,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class ValidationResult:
    original_text: str
    processed_text: str
    is_valid: bool
    errors: tuple[NotationError, ...] = ()
    warnings: tuple[str, ...] = ()
    has_unsafe_content: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "original_text": self.original_text,
            "processed_text": self.processed_text,
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
            "has_unsafe_content": self.has_unsafe_content,
        }


@dataclass(frozen=True)
class FragmentResult:
    """Validation of one math fragment found inside a document."""

    start: int
    end: int
    content: str
    result: ValidationResult


@dataclass(frozen=True)
class DocumentValidation:
    is_valid: bool
    processed_content: str
    total_errors: int
    total_warnings: int
    fragment_results: tuple[FragmentResult, ...] = ()


@dataclass(frozen=True)
class MathSanitizeResult:
    content: str
    is_valid: bool
    errors: tuple[NotationError, ...] = ()
    warnings: tuple[str, ...] = ()


class StrictValidationError(ValueError):
    """Raised when strict mode is on and the document has notation errors."""

    def __init__(self, errors: Iterable[NotationError]) -> None:
        self.errors = tuple(errors)
        super().__init__(f"LaTeX validation failed: {len(self.errors)} errors found")


@dataclass(frozen=True)
class PatternRule:
    pattern: re.Pattern[str]
    kind: ErrorKind
    message: str


# Constructs that make MathJax (and PDF export) choke, scanned in order
DANGEROUS_PATTERNS: tuple[PatternRule, ...] = (
    PatternRule(re.compile(r"\^(?![{0-9a-zA-Z])"), ErrorKind.MALFORMED_SUPERSCRIPT,
                "Missing superscript argument after ^"),
    PatternRule(re.compile(r"_(?![{0-9a-zA-Z])"), ErrorKind.MALFORMED_SUBSCRIPT,
                "Missing subscript argument after _"),
    PatternRule(re.compile(r"\{[^}]*\Z"), ErrorKind.UNCLOSED_BRACE,
                "Unclosed opening brace {"),
    PatternRule(re.compile(r"\A[^{]*\}"), ErrorKind.UNCLOSED_BRACE,
                "Closing brace } without opening brace"),
    PatternRule(re.compile(r"\\[a-zA-Z]+[0-9]"), ErrorKind.INVALID_COMMAND,
                "Invalid LaTeX command with number directly attached"),
    PatternRule(re.compile(r"\\(?![a-zA-Z])"), ErrorKind.SYNTAX,
                "Invalid backslash usage"),
    PatternRule(re.compile(r"\\[a-zA-Z]+\([^)]*\Z"), ErrorKind.SYNTAX,
                "Unclosed parentheses in function call"),
)

DEFAULT_SAFE_COMMANDS: frozenset[str] = frozenset({
    "alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta", "iota", "kappa",
    "lambda", "mu", "nu", "xi", "pi", "rho", "sigma", "tau", "upsilon", "phi", "chi", "psi", "omega",
    "Alpha", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Eta", "Theta", "Iota", "Kappa",
    "Lambda", "Mu", "Nu", "Xi", "Pi", "Rho", "Sigma", "Tau", "Upsilon", "Phi", "Chi", "Psi", "Omega",
    "neg", "wedge", "vee", "rightarrow", "leftarrow", "leftrightarrow", "forall", "exists",
    "in", "notin", "subset", "supset", "subseteq", "supseteq", "cup", "cap", "emptyset",
    "leq", "geq", "neq", "approx", "equiv", "propto", "infty", "pm", "mp", "times", "div",
    "int", "oint", "sum", "prod", "partial", "nabla", "sqrt", "frac", "begin", "end",
    "pmatrix", "bmatrix", "vmatrix", "left", "right", "langle", "rangle",
})

_COMMAND_RE = re.compile(r"\\([a-zA-Z]+)")
_MATH_FRAGMENT_RE = re.compile(r"\$\$([^$]+)\$\$|\$([^$]+)\$")
_CONTEXT_RADIUS = 20


class LatexValidator:
    """Scan text for malformed LaTeX and produce a sanitized rewrite."""

    def __init__(self, safe_commands: Optional[Iterable[str]] = None) -> None:
        if safe_commands is None:
            safe_commands = DEFAULT_SAFE_COMMANDS | set(settings.extra_safe_commands)
        self.safe_commands = frozenset(safe_commands)

    # ---------------------
    # Single-fragment validation
    # ---------------------
    def validate(self, text: str) -> ValidationResult:
        errors: list[NotationError] = []
        warnings: list[str] = []

        # Step 1: dangerous patterns
        for rule in DANGEROUS_PATTERNS:
            for match in rule.pattern.finditer(text):
                errors.append(NotationError(
                    kind=rule.kind,
                    message=rule.message,
                    position=match.start(),
                    context=get_context(text, match.start()),
                    suggestion=get_suggestion(rule.kind, match.group(0)),
                ))
        has_unsafe_content = bool(errors)

        # Step 2: unknown commands degrade to warnings
        for match in _COMMAND_RE.finditer(text):
            if match.group(1) not in self.safe_commands:
                warnings.append(f"Unknown LaTeX command: \\{match.group(1)}")

        # Step 3: whole-string brace balance
        balanced, message, position = check_brace_balance(text)
        if not balanced:
            errors.append(NotationError(
                kind=ErrorKind.UNCLOSED_BRACE,
                message=f"Unbalanced braces: {message}",
                position=position,
                context=get_context(text, position),
            ))

        is_valid = not errors
        return ValidationResult(
            original_text=text,
            processed_text=text if is_valid else sanitize_latex(text),
            is_valid=is_valid,
            errors=tuple(errors),
            warnings=tuple(warnings),
            has_unsafe_content=has_unsafe_content,
        )

    # ---------------------
    # Document validation
    # ---------------------
    def validate_document(self, content: str) -> DocumentValidation:
        """Validate every math fragment of a document and splice fixes back in."""
        fragments = extract_math_fragments(content)
        results = tuple(
            FragmentResult(start, end, fragment, self.validate(fragment))
            for start, end, fragment in fragments
        )

        processed = content
        # Right to left so earlier spans stay valid
        for fragment in sorted(results, key=lambda f: f.start, reverse=True):
            if not fragment.result.is_valid:
                processed = (
                    processed[:fragment.start]
                    + fragment.result.processed_text
                    + processed[fragment.end:]
                )

        return DocumentValidation(
            is_valid=all(f.result.is_valid for f in results),
            processed_content=processed,
            total_errors=sum(len(f.result.errors) for f in results),
            total_warnings=sum(len(f.result.warnings) for f in results),
            fragment_results=results,
        )


def extract_math_fragments(content: str) -> list[tuple[int, int, str]]:
    """Return (start, end, text) spans for math inside a document.

    ``$$…$$`` and ``$…$`` bodies are scanned in one pass; bare ``\\command``
    tokens outside any delimiter are returned as fragments of their own.
    """
    fragments: list[tuple[int, int, str]] = []
    delimited: list[tuple[int, int]] = []
    for match in _MATH_FRAGMENT_RE.finditer(content):
        group = 1 if match.group(1) is not None else 2
        fragments.append((match.start(group), match.end(group), match.group(group)))
        delimited.append((match.start(), match.end()))

    for match in _COMMAND_RE.finditer(content):
        if not any(start <= match.start() < end for start, end in delimited):
            fragments.append((match.start(), match.end(), match.group(0)))

    fragments.sort(key=lambda f: f[0])
    return fragments


def sanitize_latex(content: str) -> str:
    """Best-effort repair of the constructs DANGEROUS_PATTERNS reports."""
    sanitized = re.sub(r"\^(?![{0-9a-zA-Z])", "^{}", content)
    sanitized = re.sub(r"_(?![{0-9a-zA-Z])", "_{}", sanitized)
    # \phi1 -> \phi_{1}
    sanitized = re.sub(r"\\([a-zA-Z]+)([0-9]+)", r"\\\1_{\2}", sanitized)
    sanitized = re.sub(r"\\(?![a-zA-Z{}_^])", "", sanitized)
    return fix_brace_imbalance(sanitized)


def check_brace_balance(content: str) -> tuple[bool, str, int]:
    depth = 0
    for i, ch in enumerate(content):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return False, "Closing brace without opening brace", i
    if depth > 0:
        return False, f"{depth} unclosed opening brace(s)", content.rfind("{")
    return True, "", 0


def fix_brace_imbalance(content: str) -> str:
    """Drop closes that would go negative, then close dangling opens."""
    depth = 0
    out: list[str] = []
    for ch in content:
        if ch == "{":
            depth += 1
        elif ch == "}":
            if depth == 0:
                continue
            depth -= 1
        out.append(ch)
    return "".join(out) + "}" * depth


def get_context(content: str, position: int, radius: int = _CONTEXT_RADIUS) -> str:
    before = content[max(0, position - radius):position]
    after = content[position:position + radius]
    return f"...{before}[ERROR HERE]{after}..."


def get_suggestion(kind: ErrorKind, error_text: str) -> str:
    if kind is ErrorKind.MALFORMED_SUPERSCRIPT:
        return "Add argument: ^ → ^{} or ^{text}"
    if kind is ErrorKind.MALFORMED_SUBSCRIPT:
        return "Add argument: _ → _{} or _{text}"
    if kind is ErrorKind.INVALID_COMMAND:
        fixed = re.sub(r"([a-zA-Z]+)([0-9]+)", r"\1_{\2}", error_text, count=1)
        return f"Change {error_text} to {fixed}"
    if kind is ErrorKind.UNCLOSED_BRACE:
        return "Add missing closing brace }"
    return "Check LaTeX syntax"


def validate_and_sanitize_math(
    content: str,
    skip_validation: bool = False,
    strict_mode: bool = False,
    log_errors: bool = False,
    validator: Optional[LatexValidator] = None,
) -> MathSanitizeResult:
    """Validate a document's math before it is handed to MathJax/PDF export."""
    if skip_validation:
        return MathSanitizeResult(content=content, is_valid=True)

    validation = (validator or LatexValidator()).validate_document(content)
    errors = tuple(e for f in validation.fragment_results for e in f.result.errors)
    warnings = tuple(w for f in validation.fragment_results for w in f.result.warnings)

    if log_errors and (not validation.is_valid or validation.total_warnings):
        logger.warning(
            "LaTeX validation: valid=%s errors=%d warnings=%d",
            validation.is_valid, validation.total_errors, validation.total_warnings,
        )
        for fragment in validation.fragment_results:
            for error in fragment.result.errors:
                logger.debug("  %s at %d: %s", error.kind.value, error.position, error.context)

    if strict_mode and not validation.is_valid:
        raise StrictValidationError(errors)

    return MathSanitizeResult(
        content=validation.processed_content,
        is_valid=validation.is_valid,
        errors=errors,
        warnings=warnings,
    )
