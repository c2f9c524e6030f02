"""
FastAPI/ASGI application entrypoint.

Build the ASGI app from environment settings; routes come from server.
Run with: uvicorn backend_hyperchain.api_server.app:app --host 0.0.0.0 --port 4000
"""

from backend_hyperchain.api_server.server import create_app

app = create_app()

__all__ = ["app"]
