"""
User profile endpoints for API v1.

Every route acts on the authenticated user, except the user listing
which is reserved for administrators.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from park_and_ride_api.app.core.security import get_current_user, require_roles
from park_and_ride_api.app.schemas.user import (
    MessageResponse,
    PasswordChange,
    Preferences,
    ProfileUpdate,
    ProfileUpdated,
    UserAnalytics,
    UserRead,
    VehicleCreate,
    VehicleRead,
)
from park_and_ride_api.app.services.user_service import UserService


router = APIRouter()


@router.get("", response_model=List[UserRead])
async def list_users(current_user: dict = Depends(require_roles("admin"))) -> List[UserRead]:
    return await UserService.list_users()


@router.put("/profile", response_model=ProfileUpdated)
async def update_profile(data: ProfileUpdate, current_user: dict = Depends(get_current_user)) -> ProfileUpdated:
    """Update profile fields.

    Only the fields present in the body are changed; ``vehicles`` and
    ``payment_methods`` replace the stored lists.
    """
    try:
        user = await UserService.update_profile(current_user["user_id"], data)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ProfileUpdated(message="Profile updated", user=user)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(data: PasswordChange, current_user: dict = Depends(get_current_user)) -> MessageResponse:
    try:
        await UserService.change_password(current_user["user_id"], data)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return MessageResponse(message="Password changed successfully")


@router.get("/analytics", response_model=UserAnalytics)
async def user_analytics(current_user: dict = Depends(get_current_user)) -> UserAnalytics:
    try:
        return await UserService.get_analytics(current_user["user_id"])
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/vehicles", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
async def add_vehicle(vehicle: VehicleCreate, current_user: dict = Depends(get_current_user)) -> VehicleRead:
    return await UserService.add_vehicle(current_user["user_id"], vehicle)


@router.delete("/vehicles/{vehicle_id}", response_model=MessageResponse)
async def delete_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
) -> MessageResponse:
    try:
        await UserService.delete_vehicle(current_user["user_id"], vehicle_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return MessageResponse(message="Vehicle deleted successfully")


@router.patch("/vehicles/{vehicle_id}/default", response_model=VehicleRead)
async def set_default_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
) -> VehicleRead:
    try:
        return await UserService.set_default_vehicle(current_user["user_id"], vehicle_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/preferences", response_model=Preferences)
async def update_preferences(preferences: Preferences, current_user: dict = Depends(get_current_user)) -> Preferences:
    try:
        return await UserService.update_preferences(current_user["user_id"], preferences)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
