"""
Ride endpoints for API v1.

The ride type catalogue is public.  Status updates are restricted to
administrators, who act on behalf of drivers.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from park_and_ride_api.app.core.security import get_current_user, require_roles
from park_and_ride_api.app.schemas.ride import (
    PoolOption,
    PoolRequest,
    RideActionResponse,
    RideAnalytics,
    RideBooked,
    RideCreate,
    RideRead,
    RideStatusUpdate,
    RideType,
)
from park_and_ride_api.app.services.cache_service import CacheService
from park_and_ride_api.app.services.ride_service import RideService


router = APIRouter()

RIDE_TYPES_CACHE_KEY = "rides:types"


@router.get("/types", response_model=List[RideType])
async def list_ride_types() -> List[RideType]:
    cached = await CacheService.get(RIDE_TYPES_CACHE_KEY)
    if cached is not None:
        return [RideType.model_validate(item) for item in cached]
    types = await RideService.list_types()
    await CacheService.set(RIDE_TYPES_CACHE_KEY, [t.model_dump() for t in types], ttl=3600)
    return types


@router.post("/book", response_model=RideBooked, status_code=status.HTTP_201_CREATED)
async def book_ride(data: RideCreate, current_user: dict = Depends(get_current_user)) -> RideBooked:
    """Book a ride.

    The fare is the type's base price times the estimated distance,
    with a 1.3x surge during 07:00-09:59 and 17:00-19:59.
    """
    return await RideService.book(current_user["user_id"], data)


@router.get("/my-rides", response_model=List[RideRead])
async def my_rides(current_user: dict = Depends(get_current_user)) -> List[RideRead]:
    return await RideService.list_rides(current_user["user_id"])


@router.put("/{ride_id}/cancel", response_model=RideActionResponse)
async def cancel_ride(
    ride_id: int = Path(..., description="Ride ID"),
    current_user: dict = Depends(get_current_user),
) -> RideActionResponse:
    try:
        ride = await RideService.cancel(current_user["user_id"], ride_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return RideActionResponse(message="Ride cancelled", ride=ride)


@router.put("/{ride_id}/status", response_model=RideActionResponse)
async def update_ride_status(
    data: RideStatusUpdate,
    ride_id: int = Path(..., description="Ride ID"),
    current_user: dict = Depends(require_roles("admin")),
) -> RideActionResponse:
    try:
        ride = await RideService.update_status(ride_id, data.status)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return RideActionResponse(message="Ride status updated", ride=ride)


@router.post("/pool", response_model=List[PoolOption])
async def pool_options(data: PoolRequest, current_user: dict = Depends(get_current_user)) -> List[PoolOption]:
    """Shared shuttle rides that could be joined at a 30% discount."""
    return await RideService.pool_options(data)


@router.get("/analytics", response_model=RideAnalytics)
async def ride_analytics(current_user: dict = Depends(get_current_user)) -> RideAnalytics:
    return await RideService.get_analytics(current_user["user_id"])
