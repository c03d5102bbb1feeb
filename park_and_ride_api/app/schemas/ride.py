"""
Pydantic models for last-mile rides.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .payment import PaymentRef

RideTypeName = Literal["cab", "shuttle", "e-rickshaw"]
RideStatus = Literal["pending", "ongoing", "completed", "cancelled"]


class RideType(BaseModel):
    type: RideTypeName
    name: str
    base_price: float
    description: str


class RideCreate(BaseModel):
    type: RideTypeName
    pickup_location: str = Field(..., min_length=1, examples=["Central Park"])
    drop_location: str = Field(..., min_length=1, examples=["Times Square"])
    scheduled_time: Optional[datetime] = None

    @field_validator("pickup_location", "drop_location")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Location must not be empty")
        return value.strip()


class RideRead(BaseModel):
    id: int
    user_id: int
    type: RideTypeName
    pickup_location: str
    drop_location: str
    scheduled_time: Optional[datetime] = None
    status: RideStatus
    fare: float
    distance_km: Optional[float] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class RideBooked(BaseModel):
    ride: RideRead
    payment: PaymentRef
    estimated_time: int = Field(..., description="Estimated trip time in minutes")


class RideStatusUpdate(BaseModel):
    status: RideStatus


class RideActionResponse(BaseModel):
    message: str
    ride: RideRead


class PoolRequest(BaseModel):
    pickup_location: str = Field(..., min_length=1)
    drop_location: str = Field(..., min_length=1)


class PoolOption(BaseModel):
    ride_id: int
    pickup_location: str
    drop_location: str
    scheduled_time: Optional[datetime] = None
    shared_fare: float


class RideTypeCount(BaseModel):
    type: RideTypeName
    count: int


class RideAnalytics(BaseModel):
    total_rides: int
    completed_rides: int
    total_spent: float
    ride_types: List[RideTypeCount]
    average_fare: float
