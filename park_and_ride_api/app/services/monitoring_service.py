"""
Process and host health for the monitoring endpoints, plus the request
timing middleware.
"""

import logging
import platform
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict

import psutil
from fastapi import Request, Response

from ..core.config import settings
from .cache_service import CacheService
from .socket_service import SocketService

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("park_and_ride_api.access")

STARTED_AT = time.time()


def uptime_seconds() -> float:
    return round(time.time() - STARTED_AT, 3)


class MonitoringService:
    """Collect system health figures."""

    @staticmethod
    def get_system_health() -> Dict[str, Any]:
        memory = psutil.virtual_memory()
        used = memory.total - memory.available
        return {
            "uptime": uptime_seconds(),
            "memory": {
                "total": memory.total,
                "used": used,
                "free": memory.available,
                "usage": round(used / memory.total * 100, 2) if memory.total else 0.0,
            },
            "cpu": {
                "load_average": list(psutil.getloadavg()),
                "cores": psutil.cpu_count() or 1,
            },
            "platform": platform.system().lower(),
            "python_version": platform.python_version(),
        }

    @classmethod
    async def health(cls) -> Dict[str, Any]:
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "system": cls.get_system_health(),
            "cache": await CacheService.health(),
            "sockets": SocketService.connection_count(),
            "environment": settings.environment,
        }

    @staticmethod
    def liveness() -> Dict[str, Any]:
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": uptime_seconds(),
            "environment": settings.environment,
        }


async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """HTTP middleware that logs method, path, status and duration."""
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        # Requests that raise are logged as 500 before the error handler runs.
        access_logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            status_code,
            (time.perf_counter() - start) * 1000,
        )
