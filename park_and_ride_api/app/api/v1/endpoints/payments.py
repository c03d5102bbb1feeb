"""
Payment endpoints for API v1.

Payments are created by the parking and ride services; these routes
let a user inspect them, request refunds and manage stored payment
methods.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from park_and_ride_api.app.core.security import get_current_user
from park_and_ride_api.app.schemas.payment import (
    PaymentMethodCreate,
    PaymentMethodRead,
    PaymentRead,
    PaymentStats,
    PaymentStatusRead,
    RefundResponse,
    Transaction,
)
from park_and_ride_api.app.services.payment_service import PaymentService


router = APIRouter()


@router.get("/history", response_model=List[PaymentRead])
async def payment_history(current_user: dict = Depends(get_current_user)) -> List[PaymentRead]:
    return await PaymentService.list_payments(current_user["user_id"])


@router.get("/transactions", response_model=List[Transaction])
async def transactions(current_user: dict = Depends(get_current_user)) -> List[Transaction]:
    return await PaymentService.list_transactions(current_user["user_id"])


@router.get("/methods", response_model=List[PaymentMethodRead])
async def list_methods(current_user: dict = Depends(get_current_user)) -> List[PaymentMethodRead]:
    return await PaymentService.list_methods(current_user["user_id"])


@router.post("/methods", response_model=PaymentMethodRead, status_code=status.HTTP_201_CREATED)
async def add_method(method: PaymentMethodCreate, current_user: dict = Depends(get_current_user)) -> PaymentMethodRead:
    return await PaymentService.add_method(current_user["user_id"], method)


@router.get("/stats", response_model=PaymentStats)
async def payment_stats(current_user: dict = Depends(get_current_user)) -> PaymentStats:
    """Totals over completed payments, plus the overall transaction count."""
    return await PaymentService.get_stats(current_user["user_id"])


@router.get("/{payment_id}/status", response_model=PaymentStatusRead)
async def payment_status(
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(get_current_user),
) -> PaymentStatusRead:
    try:
        payment = await PaymentService.get_payment(current_user["user_id"], payment_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return PaymentStatusRead(status=payment.status)


@router.post("/{payment_id}/refund", response_model=RefundResponse)
async def refund_payment(
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(get_current_user),
) -> RefundResponse:
    """Refund a completed payment."""
    try:
        payment = await PaymentService.refund_payment(current_user["user_id"], payment_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return RefundResponse(message="Refund processed", payment=payment)
