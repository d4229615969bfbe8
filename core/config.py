"""Configuration management for the Mind Profiler notation pipeline."""
from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


def _get_base_dir() -> Path:
    """Project root (the directory holding app.py)."""
    return Path(__file__).resolve().parents[1]


# Load .env from project root before any Settings default is evaluated
_env_path = _get_base_dir() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() == "true"


def _env_list(name: str) -> tuple[str, ...]:
    return tuple(
        item.strip()
        for item in os.getenv(name, "").split(",")
        if item.strip()
    )


def _find_tesseract_path() -> str | None:
    """Auto-detect the Tesseract binary."""
    if env_path := os.getenv("TESSERACT_CMD"):
        if Path(env_path).exists():
            return env_path

    # Common Windows installation locations
    for program_files in [os.getenv("ProgramFiles"), os.getenv("ProgramFiles(x86)")]:
        if program_files:
            candidate = Path(program_files) / "Tesseract-OCR" / "tesseract.exe"
            if candidate.exists():
                return str(candidate)

    return shutil.which("tesseract")


@dataclass
class Settings:
    """Application settings."""

    base_dir: Path = _get_base_dir()
    data_dir: Path = base_dir / "data"
    exports_dir: Path = data_dir / "exports"
    host: str = os.getenv("MINDPROFILER_HOST", "127.0.0.1")
    port: int = int(os.getenv("MINDPROFILER_PORT", "8000"))
    log_level: str = os.getenv("MINDPROFILER_LOG_LEVEL", "INFO")

    # OCR providers
    mathpix_app_id: str | None = os.getenv("MATHPIX_APP_ID")
    mathpix_app_key: str | None = os.getenv("MATHPIX_APP_KEY")
    mathpix_api_url: str = os.getenv("MATHPIX_API_URL", "https://api.mathpix.com/v3/text")
    mathpix_min_confidence: float = float(os.getenv("MATHPIX_MIN_CONFIDENCE", "0.5"))
    ocr_timeout: float = float(os.getenv("MINDPROFILER_OCR_TIMEOUT", "30"))
    tesseract_cmd: str | None = _find_tesseract_path()

    # Chunked PDF rendering defaults
    words_per_chunk: int = int(os.getenv("MINDPROFILER_WORDS_PER_CHUNK", "300"))
    max_retries: int = int(os.getenv("MINDPROFILER_MAX_RETRIES", "3"))
    validate_math: bool = _env_bool("MINDPROFILER_VALIDATE_MATH", True)
    strict_mode: bool = _env_bool("MINDPROFILER_STRICT_MODE", False)
    log_progress: bool = _env_bool("MINDPROFILER_LOG_PROGRESS", True)

    # Extra commands the LaTeX validator should accept without a warning
    extra_safe_commands: tuple[str, ...] = field(
        default_factory=lambda: _env_list("MINDPROFILER_EXTRA_SAFE_COMMANDS")
    )

    @property
    def mathpix_configured(self) -> bool:
        return bool(self.mathpix_app_id and self.mathpix_app_key)


settings = Settings()
