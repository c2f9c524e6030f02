"""
Main entrypoint: ingestion pipeline + FastAPI server in one process.

The pipeline runs as asyncio tasks inside the server's event loop (started and
stopped by the app lifespan). On SIGINT/SIGTERM uvicorn shuts the app down,
in-flight transactions complete, then the process exits.

Env: INGESTION_MODE, HYPERION_RPC, HYPERION_WS, API_HOST, API_PORT, LOG_LEVEL, etc.

Serve the module-level app directly:
uvicorn backend_hyperchain.api_server.app:app --host 0.0.0.0 --port 4000
"""

import os

# Configure structured JSON logging before other imports that may log
from backend_hyperchain.hyperchain_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Load settings, build the app and serve it."""
    from backend_hyperchain.api_server.server import create_app
    from backend_hyperchain.config import get_settings
    import uvicorn

    settings = get_settings()
    app = create_app(settings)

    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        ingestion_mode=settings.ingestion_mode,
    )
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
