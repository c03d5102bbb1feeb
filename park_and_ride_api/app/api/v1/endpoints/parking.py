"""
Parking endpoints for API v1.

Slot listings are public.  Reservations, check-in, check-out and
analytics require authentication; creating slots is for
administrators.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from park_and_ride_api.app.core.security import get_current_user, require_roles
from park_and_ride_api.app.schemas.parking import (
    CheckIn,
    CheckOut,
    ParkingAnalytics,
    ParkingSlotCreate,
    ParkingSlotRead,
    ReservationBooked,
    ReservationCancelled,
    ReservationCreate,
    ReservationRead,
    SlotActionResponse,
    SlotType,
)
from park_and_ride_api.app.services.parking_service import ParkingService


router = APIRouter()


@router.get("/slots", response_model=List[ParkingSlotRead])
async def list_slots() -> List[ParkingSlotRead]:
    return await ParkingService.list_slots()


@router.get("/slots/available", response_model=List[ParkingSlotRead])
async def list_available_slots(
    location: Optional[str] = Query(None, description="Exact location name"),
    type: Optional[SlotType] = Query(None, description="Slot type"),
) -> List[ParkingSlotRead]:
    """List slots that are neither reserved nor occupied."""
    return await ParkingService.list_available(location=location, slot_type=type)


@router.post("/slots", response_model=ParkingSlotRead, status_code=status.HTTP_201_CREATED)
async def create_slot(
    data: ParkingSlotCreate,
    current_user: dict = Depends(require_roles("admin")),
) -> ParkingSlotRead:
    try:
        return await ParkingService.create_slot(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/reserve", response_model=ReservationBooked, status_code=status.HTTP_201_CREATED)
async def reserve_slot(data: ReservationCreate, current_user: dict = Depends(get_current_user)) -> ReservationBooked:
    """Reserve a slot and pay for it.

    The price is the slot's hourly rate times the number of started
    hours, times 1.5 for reservations starting between 07:00 and 09:59.
    """
    try:
        return await ParkingService.reserve(current_user["user_id"], data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/reservations", response_model=List[ReservationRead])
async def list_reservations(current_user: dict = Depends(get_current_user)) -> List[ReservationRead]:
    return await ParkingService.list_reservations(current_user["user_id"])


@router.put("/reservations/{reservation_id}/cancel", response_model=ReservationCancelled)
async def cancel_reservation(
    reservation_id: int = Path(..., description="Reservation ID"),
    current_user: dict = Depends(get_current_user),
) -> ReservationCancelled:
    """Cancel an active reservation.

    Full refund when cancelled at least two hours before the start.
    """
    try:
        return await ParkingService.cancel(current_user["user_id"], reservation_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/checkin", response_model=SlotActionResponse)
async def check_in(data: CheckIn, current_user: dict = Depends(get_current_user)) -> SlotActionResponse:
    try:
        slot = await ParkingService.check_in(current_user["user_id"], data.code)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SlotActionResponse(message="Check-in successful", slot=slot)


@router.post("/checkout", response_model=SlotActionResponse)
async def check_out(data: CheckOut, current_user: dict = Depends(get_current_user)) -> SlotActionResponse:
    try:
        slot = await ParkingService.check_out(current_user["user_id"], data.slot_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SlotActionResponse(message="Check-out successful", slot=slot)


@router.get("/analytics", response_model=ParkingAnalytics)
async def parking_analytics(current_user: dict = Depends(get_current_user)) -> ParkingAnalytics:
    return await ParkingService.get_analytics(current_user["user_id"])
