"""Quick launcher for the Mind Profiler notation web service."""
from __future__ import annotations

import uvicorn

from app import create_app
from core.config import settings
from core.logger import init_logging, logger
from utils.file_utils import ensure_directories


def main() -> None:
    """Launch the FastAPI web app."""
    init_logging()
    ensure_directories()
    app = create_app()
    logger.info("Web interface: http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
