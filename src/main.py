"""Main application entry point."""

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from src.services.config import get_settings  # noqa: E402
from src.services.logging import setup_server_logging  # noqa: E402

# Configure logging (with file logging)
setup_server_logging(get_settings().log_file)
logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="HOA Dues API")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    args = parser.parse_args()

    from src.api.app import app

    logger.info(f"Starting Uvicorn server on {args.host}:{args.port}...")
    config = uvicorn.Config(
        app=app,
        host=args.host,
        port=args.port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    server.run()


if __name__ == "__main__":
    main()
