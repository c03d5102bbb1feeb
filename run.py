"""Entry point for the Park and Ride API server.

Host and port are read from ``HOST`` and ``PORT`` (see
``park_and_ride_api.app.core.config``).  Defaults are ``0.0.0.0`` and
``5000``.

Usage:
    python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from park_and_ride_api.app.core.config import settings
from park_and_ride_api.app.main import app


async def main() -> None:
    """Serve the API until interrupted."""
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    try:
        await server.serve()
    except Exception:
        logging.exception("API server stopped with an error")
        raise


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
