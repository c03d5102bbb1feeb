"""
Pydantic models for in-app notifications and notification settings.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

NotificationType = Literal["ride", "parking", "payment", "welcome", "system"]


class NotificationRead(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    is_read: bool = False
    created_at: datetime

    model_config = {
        "from_attributes": True,
    }


class NotificationSettings(BaseModel):
    """Channels and topics a user wants to be notified about."""

    email: bool = True
    push: bool = True
    sms: bool = False
    ride_updates: bool = True
    parking_updates: bool = True
    payment_updates: bool = True
    promotional: bool = False


class NotificationSettingsUpdated(BaseModel):
    message: str
    settings: NotificationSettings


class NotificationAction(BaseModel):
    message: str
    notification: NotificationRead
