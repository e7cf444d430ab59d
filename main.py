"""Main entry point for the threadchat API server."""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from threadchat.api import create_fastapi_app
from threadchat.app import Application
from threadchat.config import Settings
from threadchat.logging_config import setup_logging


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent
    load_dotenv(project_root / ".env")
    setup_logging()

    # Get configuration from environment
    settings = Settings.from_env()

    # Create FastAPI app
    app = create_fastapi_app(Application(settings))

    # Run with uvicorn
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
