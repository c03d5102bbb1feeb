"""
Notification endpoints for API v1.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from park_and_ride_api.app.core.security import get_current_user
from park_and_ride_api.app.schemas.notification import (
    NotificationAction,
    NotificationRead,
    NotificationSettings,
    NotificationSettingsUpdated,
)
from park_and_ride_api.app.schemas.user import MessageResponse
from park_and_ride_api.app.services.notification_service import NotificationService


router = APIRouter()


@router.get("", response_model=List[NotificationRead])
async def list_notifications(current_user: dict = Depends(get_current_user)) -> List[NotificationRead]:
    return await NotificationService.list_notifications(current_user["user_id"])


@router.get("/settings", response_model=NotificationSettings)
async def get_settings(current_user: dict = Depends(get_current_user)) -> NotificationSettings:
    try:
        return await NotificationService.get_settings(current_user["user_id"])
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/settings", response_model=NotificationSettingsUpdated)
async def update_settings(
    new_settings: NotificationSettings,
    current_user: dict = Depends(get_current_user),
) -> NotificationSettingsUpdated:
    try:
        saved = await NotificationService.update_settings(current_user["user_id"], new_settings)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return NotificationSettingsUpdated(message="Settings updated", settings=saved)


@router.put("/{notification_id}/read", response_model=NotificationAction)
async def mark_read(
    notification_id: int = Path(..., description="Notification ID"),
    current_user: dict = Depends(get_current_user),
) -> NotificationAction:
    try:
        notification = await NotificationService.mark_read(current_user["user_id"], notification_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return NotificationAction(message="Notification marked as read", notification=notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: int = Path(..., description="Notification ID"),
    current_user: dict = Depends(get_current_user),
) -> MessageResponse:
    try:
        await NotificationService.delete_notification(current_user["user_id"], notification_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return MessageResponse(message="Notification deleted")
