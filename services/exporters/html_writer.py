"""HTML export writer."""
from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from core.config import settings
from core.logger import logger


def _safe_stem(name: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9_-]+", "_", name).strip("_")
    return stem or "document"


class HTMLWriter:
    """Persist rendered HTML documents to disk."""

    def __init__(self, output_dir: Optional[Path] = None) -> None:
        self.output_dir = output_dir or settings.exports_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write_html(self, html: str, name: str) -> Path:
        """Write HTML to ``<exports>/<name>_<timestamp>.html``."""
        if not html:
            raise ValueError("HTML content is empty")
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = self.output_dir / f"{_safe_stem(name)}_{timestamp}.html"
        logger.info("Writing HTML to %s", path)
        path.write_text(html, encoding="utf-8")
        return path
