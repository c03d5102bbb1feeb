"""
Business logic for last-mile rides.

Fares are ``base price x estimated distance``, with a surge multiplier
during the morning and evening peaks.  A booked ride starts
``pending`` with a ``pending`` payment; the payment completes with the
ride or fails if the ride is cancelled first.  Status changes are
published on the socket channel as ``ride-status-updated``.
"""

import logging
import random
import sqlite3
from datetime import datetime
from typing import List, Optional

from ..core.db import get_connection
from ..schemas.payment import PaymentRef
from ..schemas.ride import (
    PoolOption,
    PoolRequest,
    RideAnalytics,
    RideBooked,
    RideCreate,
    RideRead,
    RideType,
    RideTypeCount,
)
from .notification_service import NotificationService
from .payment_service import PaymentService
from .socket_service import SocketService

logger = logging.getLogger(__name__)

RIDE_TYPES: List[RideType] = [
    RideType(type="cab", name="Cab", base_price=15, description="Private cab service"),
    RideType(type="shuttle", name="Shuttle", base_price=8, description="Shared shuttle service"),
    RideType(type="e-rickshaw", name="E-Rickshaw", base_price=5, description="Electric rickshaw"),
]
BASE_PRICES = {ride_type.type: ride_type.base_price for ride_type in RIDE_TYPES}

SURGE_HOURS = set(range(7, 10)) | set(range(17, 20))
SURGE_MULTIPLIER = 1.3
POOL_DISCOUNT = 0.7
POOL_WINDOW_MINUTES = 30
POOL_LIMIT = 5
MINUTES_PER_KM = 3


def estimate_distance_km(pickup_location: str, drop_location: str) -> float:
    """Estimate the trip distance between two named places.

    Locations are free text without coordinates, so the estimate is a
    uniform draw between 1 and 11 km.
    """
    return random.uniform(1, 11)


def calculate_fare(ride_type: str, distance_km: float, when: datetime) -> int:
    """Fare for ``distance_km`` on ``ride_type`` starting at ``when``."""
    fare = round(BASE_PRICES[ride_type] * distance_km)
    surge = SURGE_MULTIPLIER if when.hour in SURGE_HOURS else 1
    return round(fare * surge)


def _ride(row: sqlite3.Row) -> RideRead:
    return RideRead.model_validate(dict(row))


def _fetch_ride(cursor: sqlite3.Cursor, ride_id: int) -> Optional[sqlite3.Row]:
    return cursor.execute("SELECT * FROM rides WHERE id = ?", (ride_id,)).fetchone()


class RideService:
    """Service for booking, cancelling and tracking rides."""

    @classmethod
    async def list_types(cls) -> List[RideType]:
        return list(RIDE_TYPES)

    @classmethod
    async def book(cls, user_id: int, data: RideCreate) -> RideBooked:
        when = data.scheduled_time or datetime.now()
        distance = estimate_distance_km(data.pickup_location, data.drop_location)
        fare = calculate_fare(data.type, distance, when)

        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO rides (user_id, type, pickup_location, drop_location, scheduled_time, fare, distance_km)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    data.type,
                    data.pickup_location,
                    data.drop_location,
                    when.isoformat(),
                    fare,
                    round(distance, 2),
                ),
            )
            ride_id = cursor.lastrowid
            payment_id = PaymentService.record_payment(
                cursor,
                user_id=user_id,
                amount=fare,
                method="card",
                type_="ride",
                reference_id=ride_id,
                description=f"Ride from {data.pickup_location} to {data.drop_location}",
            )
            ride = _ride(_fetch_ride(cursor, ride_id))
            conn.commit()
        finally:
            conn.close()

        logger.info("User %s booked %s ride %s (fare %s)", user_id, data.type, ride_id, fare)
        await NotificationService.notify(
            user_id,
            "Ride Booked",
            f"Your {data.type} from {data.pickup_location} to {data.drop_location} is booked.",
            "ride",
        )
        await SocketService.emit("ride-status-updated", ride.model_dump(mode="json"))
        return RideBooked(
            ride=ride,
            payment=PaymentRef(id=payment_id, amount=fare),
            estimated_time=round(distance * MINUTES_PER_KM),
        )

    @classmethod
    async def list_rides(cls, user_id: int) -> List[RideRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM rides WHERE user_id = ? ORDER BY created_at DESC, id DESC", (user_id,)
            ).fetchall()
        finally:
            conn.close()
        return [_ride(row) for row in rows]

    @classmethod
    async def cancel(cls, user_id: int, ride_id: int) -> RideRead:
        """Cancel one of the caller's pending rides."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT status FROM rides WHERE id = ? AND user_id = ?", (ride_id, user_id)
            ).fetchone()
            if not row:
                raise LookupError("Ride not found")
            if row["status"] != "pending":
                raise ValueError("Cannot cancel this ride")
            cursor.execute(
                "UPDATE rides SET status = 'cancelled', updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (ride_id,),
            )
            PaymentService.transition_for_reference(cursor, "ride", ride_id, ("pending",), "failed")
            ride = _ride(_fetch_ride(cursor, ride_id))
            conn.commit()
        finally:
            conn.close()
        await NotificationService.notify(user_id, "Ride Cancelled", "Your ride has been cancelled.", "ride")
        await SocketService.emit("ride-status-updated", ride.model_dump(mode="json"))
        return ride

    @classmethod
    async def update_status(cls, ride_id: int, status: str) -> RideRead:
        """Set a ride's status (drivers and administrators).

        Completing a ride completes its payment and bumps the owner's
        ride counter; cancelling fails a payment that is still pending.
        A cancelled ride cannot be completed (``ValueError``).
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = _fetch_ride(cursor, ride_id)
            if not row:
                raise LookupError("Ride not found")
            if status == "completed" and row["status"] == "cancelled":
                raise ValueError("Cannot complete a cancelled ride")
            cursor.execute(
                "UPDATE rides SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (status, ride_id),
            )
            if status == "completed" and row["status"] != "completed":
                PaymentService.transition_for_reference(cursor, "ride", ride_id, ("pending",), "completed")
                cursor.execute(
                    "UPDATE users SET total_rides = total_rides + 1 WHERE id = ?", (row["user_id"],)
                )
            elif status == "cancelled":
                PaymentService.transition_for_reference(cursor, "ride", ride_id, ("pending",), "failed")
            ride = _ride(_fetch_ride(cursor, ride_id))
            conn.commit()
        finally:
            conn.close()

        logger.info("Ride %s status %s -> %s", ride_id, row["status"], status)
        await NotificationService.notify(
            ride.user_id,
            "Ride Status Updated",
            f"Your {ride.type} ride is now {status}.",
            "ride",
        )
        await SocketService.emit("ride-status-updated", ride.model_dump(mode="json"))
        return ride

    @classmethod
    async def pool_options(cls, data: PoolRequest) -> List[PoolOption]:
        """Recent pending shuttle rides whose pickup matches the request."""
        conn = get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT * FROM rides
                WHERE status = 'pending' AND type = 'shuttle'
                  AND instr(lower(pickup_location), lower(?)) > 0
                  AND created_at >= datetime('now', '-{POOL_WINDOW_MINUTES} minutes')
                ORDER BY created_at DESC, id DESC
                LIMIT {POOL_LIMIT}
                """,
                (data.pickup_location.strip(),),
            ).fetchall()
        finally:
            conn.close()
        return [
            PoolOption(
                ride_id=row["id"],
                pickup_location=row["pickup_location"],
                drop_location=row["drop_location"],
                scheduled_time=row["scheduled_time"],
                shared_fare=round(row["fare"] * POOL_DISCOUNT),
            )
            for row in rows
        ]

    @classmethod
    async def get_analytics(cls, user_id: int) -> RideAnalytics:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            totals = cursor.execute(
                """
                SELECT COUNT(*) AS total,
                       SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed,
                       COALESCE(SUM(CASE WHEN status = 'completed' THEN fare END), 0) AS spent
                FROM rides WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()
            by_type = cursor.execute(
                "SELECT type, COUNT(*) AS count FROM rides WHERE user_id = ? GROUP BY type ORDER BY type",
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        completed = totals["completed"] or 0
        spent = float(totals["spent"])
        return RideAnalytics(
            total_rides=totals["total"],
            completed_rides=completed,
            total_spent=round(spent, 2),
            ride_types=[RideTypeCount(type=row["type"], count=row["count"]) for row in by_type],
            average_fare=round(spent / completed, 2) if completed else 0.0,
        )
