"""
Pydantic models for payments and stored payment methods.

Payments are created by the parking and ride services, never directly
by clients, so there is no ``PaymentCreate`` schema.  ``reference_id``
holds the ID of the reservation or ride the payment belongs to.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

PaymentMethodType = Literal["card", "wallet", "metro-card", "cash"]
PaymentStatus = Literal["pending", "completed", "failed", "refunded"]
PaymentType = Literal["parking", "ride", "subscription"]


class PaymentRead(BaseModel):
    id: int
    user_id: int
    amount: float
    method: PaymentMethodType
    status: PaymentStatus
    type: PaymentType
    reference_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class PaymentRef(BaseModel):
    """Payment stub embedded in booking responses."""

    id: int
    amount: float


class PaymentStatusRead(BaseModel):
    status: PaymentStatus


class RefundResponse(BaseModel):
    message: str
    payment: PaymentRead


class Transaction(BaseModel):
    """A payment rendered for the transactions list."""

    id: int
    type: PaymentType
    amount: float
    status: PaymentStatus
    date: datetime
    description: str


class PaymentStats(BaseModel):
    total_spent: float
    monthly_average: float
    total_transactions: int
    this_month: float


class PaymentMethodCreate(BaseModel):
    type: PaymentMethodType = Field("card", examples=["card"])
    name: str = Field(..., min_length=1, examples=["Visa ending in 1234"])
    last_four: Optional[str] = Field(None, pattern=r"^\d{4}$", examples=["1234"])


class PaymentMethodRead(PaymentMethodCreate):
    id: int
    is_default: bool = False

    model_config = {
        "from_attributes": True,
    }
