"""
Pydantic models for user accounts and profiles.

Registration and login payloads, the token response returned by the
auth endpoints, and the profile document shown on the profile page.
Passwords are never part of a response model.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .payment import PaymentMethodCreate, PaymentMethodRead


def _normalise_email(value: str) -> str:
    value = value.strip().lower()
    local, _, domain = value.partition("@")
    if not local or "." not in domain or domain.startswith(".") or domain.endswith("."):
        raise ValueError("Invalid email address")
    return value


class UserCreate(BaseModel):
    """Schema for registering a user."""

    name: str = Field(..., min_length=1, examples=["Jane Doe"])
    email: str = Field(..., examples=["jane@example.com"])
    password: str = Field(..., min_length=6, examples=["secret123"])
    phone: Optional[str] = Field(None, examples=["+1 555 0100"])

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _normalise_email(value)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name must not be empty")
        return value.strip()


class UserLogin(BaseModel):
    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _normalise_email(value)


class UserSummary(BaseModel):
    """Short user representation returned together with a token."""

    id: int
    first_name: str
    last_name: str
    email: str
    role: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserSummary


class UserRead(BaseModel):
    """Row in the administrator's user list."""

    id: int
    name: str
    email: str
    role: str
    disabled: bool = False
    created_at: datetime

    model_config = {
        "from_attributes": True,
    }


class NotificationPreferences(BaseModel):
    email: bool = True
    push: bool = True
    sms: bool = False


class PrivacyPreferences(BaseModel):
    share_location: bool = True
    share_ride_history: bool = False
    share_parking_history: bool = True


class AccessibilityPreferences(BaseModel):
    wheelchair_accessible: bool = False
    audio_announcements: bool = False
    large_text: bool = False


class Preferences(BaseModel):
    """User preferences with defaults for every flag."""

    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    privacy: PrivacyPreferences = Field(default_factory=PrivacyPreferences)
    accessibility: AccessibilityPreferences = Field(default_factory=AccessibilityPreferences)


class VehicleCreate(BaseModel):
    make: str = Field(..., min_length=1, examples=["Toyota"])
    model: str = Field(..., min_length=1, examples=["Camry"])
    year: Optional[int] = Field(None, ge=1900, le=2100, examples=[2020])
    color: Optional[str] = Field(None, examples=["Silver"])
    license_plate: str = Field(..., min_length=1, examples=["ABC123"])


class VehicleRead(VehicleCreate):
    id: int
    is_default: bool = False

    model_config = {
        "from_attributes": True,
    }


class ProfileRead(BaseModel):
    """Full profile document for the authenticated user."""

    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    phone: str = ""
    date_of_birth: str = ""
    address: str = ""
    avatar: Optional[str] = None
    rating: float = 0
    total_rides: int = 0
    total_parking: int = 0
    member_since: datetime
    preferences: Preferences
    vehicles: List[VehicleRead] = []
    payment_methods: List[PaymentMethodRead] = []


class ProfileUpdate(BaseModel):
    """Partial profile update.

    Only fields that are present in the request body are written.
    ``vehicles`` and ``payment_methods`` replace the stored lists.
    """

    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    date_of_birth: Optional[str] = None
    address: Optional[str] = None
    avatar: Optional[str] = None
    preferences: Optional[Preferences] = None
    vehicles: Optional[List[VehicleCreate]] = None
    payment_methods: Optional[List[PaymentMethodCreate]] = None


class PasswordChange(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class UserAnalytics(BaseModel):
    loyalty_points: int
    subscriptions: List[str]
    created_at: datetime
    total_rides: int
    total_parking: int


class MessageResponse(BaseModel):
    message: str


class ProfileUpdated(BaseModel):
    message: str
    user: ProfileRead
