"""Main entry point for the agritrace API."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from agritrace.api import create_fastapi_app
from agritrace.logging_config import get_logger, setup_logging


def main():
    """Load .env, configure logging and serve the traceability API."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()
    logger = get_logger("agritrace.main")

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))

    app = create_fastapi_app()
    logger.info("Serving traceability API on %s:%s", api_host, api_port)

    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
