"""
Grooming scheduler entry point.

Serves the HTTP API with uvicorn, or creates the database tables.

Usage:
    Serve:     python main.py serve [host] [port]
    Init DB:   python main.py init-db
"""

import logging
import sys

from grooming_scheduler.config import settings

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _run_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Start the API (tables are created on startup)."""
    import uvicorn

    logger.info("Starting %s on %s:%d", settings.app_name, host, port)
    uvicorn.run(
        "grooming_scheduler.api.app:app",
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


def _run_init_db() -> None:
    """Create every table that does not exist yet, then exit."""
    from grooming_scheduler.database import init_db

    init_db()
    logger.info("Database initialised at %s", settings.database.url)


if __name__ == "__main__":
    command = sys.argv[1] if len(sys.argv) > 1 else "serve"
    if command == "init-db":
        _run_init_db()
    elif command == "serve":
        host = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_HOST
        port = int(sys.argv[3]) if len(sys.argv) > 3 else DEFAULT_PORT
        _run_server(host, port)
    else:
        print(f"Unknown command: {command!r} (expected 'serve' or 'init-db')")
        sys.exit(2)
