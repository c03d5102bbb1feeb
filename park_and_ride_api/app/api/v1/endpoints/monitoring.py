"""
Monitoring endpoints for API v1.
"""

from typing import Any, Dict

from fastapi import APIRouter

from park_and_ride_api.app.services.monitoring_service import MonitoringService


router = APIRouter()


@router.get("/health", response_model=Dict[str, Any])
async def health() -> Dict[str, Any]:
    """System, cache and socket health."""
    return await MonitoringService.health()
