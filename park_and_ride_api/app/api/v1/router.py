"""
Top-level router for version 1 of the API.

This router aggregates the domain routers under a unified prefix.
When a new domain is introduced, include its router here.
"""

from fastapi import APIRouter

from .endpoints import (
    auth,
    users,
    parking,
    rides,
    payments,
    notifications,
    monitoring,
    ws,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(parking.router, prefix="/parking", tags=["parking"])
router.include_router(rides.router, prefix="/rides", tags=["rides"])
router.include_router(payments.router, prefix="/payments", tags=["payments"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
router.include_router(monitoring.router, prefix="/monitoring", tags=["monitoring"])
# The socket route defines its own "/ws" path.
router.include_router(ws.router, tags=["realtime"])
