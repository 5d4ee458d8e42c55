"""Main application entry point."""

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from ottalika.config import settings  # noqa: E402
from ottalika.services.logging import setup_server_logging  # noqa: E402

# Configure logging (with file logging)
setup_server_logging(log_file=settings.log_file, level=settings.log_level)
logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Ottalika API server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    args = parser.parse_args()

    logger.info(f"Starting Uvicorn server on {args.host}:{args.port} ({settings.environment})")
    uvicorn.run("ottalika.api.app:app", host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
