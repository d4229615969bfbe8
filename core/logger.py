"""Logging for the notation service.

Two loggers are exported: ``logger`` for the application and
``progress_logger`` for per-chunk render progress, which can be silenced
on its own through ``MINDPROFILER_LOG_PROGRESS``.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from core.config import settings

LOG_FILE = settings.data_dir / "logs" / "mind_profiler.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "PIL")

logger = logging.getLogger("mind_profiler")
progress_logger = logger.getChild("progress")


def init_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """Attach console and rotating file handlers to the application logger once."""
    logger.setLevel((level or settings.log_level).upper())
    progress_logger.setLevel(logging.NOTSET if settings.log_progress else logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if logger.handlers:
        return

    path = log_file or LOG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    # Unicode math glyphs end up in log lines
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    file_handler = RotatingFileHandler(
        path,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
        errors="replace",
    )
    file_handler.setFormatter(formatter)

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)
