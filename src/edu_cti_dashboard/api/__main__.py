"""
Dashboard API CLI entry point.

Run with: python -m edu_cti_dashboard.api

Set PORT to override the default port, EDU_CTI_API_URL to point at the
EduThreat-CTI API.
"""

import argparse
import logging
import os

import uvicorn

from edu_cti_dashboard.core import config
from edu_cti_dashboard.core.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Start the EduThreat-CTI Dashboard API server"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: 8080 or PORT env var)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=config.LOG_LEVEL,
        help=f"Logging level (default: {config.LOG_LEVEL})",
    )

    args = parser.parse_args()
    configure_logging(level=args.log_level)

    port = args.port or int(os.environ.get("PORT", 8080))

    logger.info(f"Starting EduThreat-CTI Dashboard API on {args.host}:{port} (upstream: {config.API_BASE_URL})")
    logger.info(f"API documentation available at: http://localhost:{port}/docs")

    uvicorn.run(
        "edu_cti_dashboard.api.main:app",
        host=args.host,
        port=port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_config=None,
    )


if __name__ == "__main__":
    main()
