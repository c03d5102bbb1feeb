"""
Pydantic models for parking slots and reservations.

Slots are listed publicly; reservations belong to the user who made
them.  ``hourly_rate`` is the base price used by the reservation
pricing rule in ``ParkingService``.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .payment import PaymentMethodType, PaymentRef

SlotType = Literal["standard", "premium"]
ReservationStatus = Literal["active", "cancelled", "completed", "no-show"]


class ParkingSlotCreate(BaseModel):
    slot_number: str = Field(..., min_length=1, examples=["A-01"])
    location: str = Field(..., min_length=1, examples=["Downtown"])
    type: SlotType = "standard"
    hourly_rate: float = Field(10.0, gt=0, examples=[10.0])


class ParkingSlotRead(ParkingSlotCreate):
    id: int
    is_occupied: bool = False
    is_reserved: bool = False
    assigned_to: Optional[int] = None
    last_updated: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class ReservationCreate(BaseModel):
    slot_id: int
    start_time: datetime
    end_time: datetime
    method: PaymentMethodType = "card"


class ReservationRead(BaseModel):
    id: int
    user_id: int
    slot_id: int
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    check_in_code: Optional[str] = None
    amount: float = 0
    created_at: datetime
    updated_at: Optional[datetime] = None
    slot: Optional[ParkingSlotRead] = None

    model_config = {
        "from_attributes": True,
    }


class ReservationBooked(BaseModel):
    reservation: ReservationRead
    payment: PaymentRef
    check_in_code: str


class ReservationCancelled(BaseModel):
    message: str
    refund_amount: float
    reservation: ReservationRead


class CheckIn(BaseModel):
    code: str = Field(..., min_length=1)


class CheckOut(BaseModel):
    slot_id: int


class SlotActionResponse(BaseModel):
    message: str
    slot: ParkingSlotRead


class ParkingAnalytics(BaseModel):
    total_reservations: int
    active_reservations: int
    total_spent: float
    average_duration: float
