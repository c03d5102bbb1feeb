"""
Business logic for parking slots and reservations.

A slot is *available* when it is neither reserved nor occupied.
Reserving marks the slot reserved and assigned to the user, records a
completed parking payment and hands out a signed check-in code.  The
slot then moves through check-in (occupied) and check-out (released,
reservation completed).  Cancelling releases the slot and refunds the
payment when the start is at least ``FREE_CANCELLATION_HOURS`` away.

Every slot change clears the cached availability listings and is
published on the socket channel as ``parking-slot-updated``.
"""

import logging
import math
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from ..core.config import settings
from ..core.db import get_connection
from ..core.security import make_check_in_code
from ..schemas.parking import (
    ParkingAnalytics,
    ParkingSlotCreate,
    ParkingSlotRead,
    ReservationBooked,
    ReservationCancelled,
    ReservationCreate,
    ReservationRead,
)
from ..schemas.payment import PaymentRef
from .cache_service import CacheService
from .notification_service import NotificationService
from .payment_service import PaymentService
from .socket_service import SocketService

logger = logging.getLogger(__name__)

PEAK_HOURS = range(7, 10)
PEAK_MULTIPLIER = 1.5
FREE_CANCELLATION_HOURS = 2
SLOT_CACHE_PATTERN = "parking:slots:*"


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def reservation_price(hourly_rate: float, start: datetime, end: datetime) -> float:
    """Price of a reservation.

    Started hours are billed in full, and reservations starting between
    07:00 and 09:59 cost ``PEAK_MULTIPLIER`` times as much.
    """
    hours = math.ceil((as_utc(end) - as_utc(start)).total_seconds() / 3600)
    multiplier = PEAK_MULTIPLIER if start.hour in PEAK_HOURS else 1
    return round(hourly_rate * hours * multiplier, 2)


def _slot(row: sqlite3.Row) -> ParkingSlotRead:
    return ParkingSlotRead.model_validate(dict(row))


def _fetch_slot(cursor: sqlite3.Cursor, slot_id: int) -> Optional[sqlite3.Row]:
    return cursor.execute("SELECT * FROM parking_slots WHERE id = ?", (slot_id,)).fetchone()


def _fetch_reservation(cursor: sqlite3.Cursor, reservation_id: int) -> ReservationRead:
    row = cursor.execute("SELECT * FROM reservations WHERE id = ?", (reservation_id,)).fetchone()
    slot = _fetch_slot(cursor, row["slot_id"])
    data = dict(row)
    data["slot"] = _slot(slot) if slot else None
    return ReservationRead.model_validate(data)


def _release_slot(cursor: sqlite3.Cursor, slot_id: int) -> None:
    cursor.execute(
        """
        UPDATE parking_slots
        SET is_reserved = 0, is_occupied = 0, assigned_to = NULL, last_updated = CURRENT_TIMESTAMP
        WHERE id = ?
        """,
        (slot_id,),
    )


class ParkingService:
    """Service for slots, reservations, check-in and check-out."""

    @classmethod
    async def _slot_changed(cls, slot: ParkingSlotRead) -> None:
        await CacheService.delete_pattern(SLOT_CACHE_PATTERN)
        await SocketService.emit("parking-slot-updated", slot.model_dump(mode="json"))

    @classmethod
    async def list_slots(cls) -> List[ParkingSlotRead]:
        conn = get_connection()
        try:
            rows = conn.execute("SELECT * FROM parking_slots ORDER BY location, slot_number").fetchall()
        finally:
            conn.close()
        return [_slot(row) for row in rows]

    @classmethod
    async def list_available(cls, location: Optional[str] = None, slot_type: Optional[str] = None) -> List[ParkingSlotRead]:
        """List slots that are neither reserved nor occupied.

        Results are cached per (location, type) filter combination.
        """
        cache_key = f"parking:slots:available:{location or '*'}:{slot_type or '*'}"
        cached = await CacheService.get(cache_key)
        if cached is not None:
            return [ParkingSlotRead.model_validate(item) for item in cached]

        query = "SELECT * FROM parking_slots WHERE is_reserved = 0 AND is_occupied = 0"
        params: list = []
        if location:
            query += " AND location = ?"
            params.append(location)
        if slot_type:
            query += " AND type = ?"
            params.append(slot_type)
        query += " ORDER BY location, slot_number"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        slots = [_slot(row) for row in rows]
        await CacheService.set(cache_key, [s.model_dump(mode="json") for s in slots], ttl=settings.cache_ttl)
        return slots

    @classmethod
    async def create_slot(cls, data: ParkingSlotCreate) -> ParkingSlotRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    "INSERT INTO parking_slots (slot_number, location, type, hourly_rate) VALUES (?, ?, ?, ?)",
                    (data.slot_number, data.location, data.type, data.hourly_rate),
                )
            except sqlite3.IntegrityError:
                raise ValueError(f"Slot {data.slot_number} already exists")
            slot = _slot(_fetch_slot(cursor, cursor.lastrowid))
            conn.commit()
        finally:
            conn.close()
        logger.info("Created parking slot %s at %s", slot.slot_number, slot.location)
        await cls._slot_changed(slot)
        return slot

    @classmethod
    async def reserve(cls, user_id: int, data: ReservationCreate) -> ReservationBooked:
        """Reserve an available slot for the given time window.

        Raises ``ValueError`` if the window is empty or the slot is
        unknown, reserved or occupied.
        """
        if as_utc(data.end_time) <= as_utc(data.start_time):
            raise ValueError("end_time must be after start_time")

        conn = get_connection()
        try:
            cursor = conn.cursor()
            slot_row = _fetch_slot(cursor, data.slot_id)
            if not slot_row or slot_row["is_occupied"] or slot_row["is_reserved"]:
                raise ValueError("Slot not available")
            amount = reservation_price(slot_row["hourly_rate"], data.start_time, data.end_time)

            cursor.execute(
                "INSERT INTO reservations (user_id, slot_id, start_time, end_time, amount) VALUES (?, ?, ?, ?, ?)",
                (user_id, data.slot_id, data.start_time.isoformat(), data.end_time.isoformat(), amount),
            )
            reservation_id = cursor.lastrowid
            code = make_check_in_code(reservation_id, user_id)
            cursor.execute("UPDATE reservations SET check_in_code = ? WHERE id = ?", (code, reservation_id))

            cursor.execute(
                """
                UPDATE parking_slots
                SET is_reserved = 1, assigned_to = ?, last_updated = CURRENT_TIMESTAMP
                WHERE id = ? AND is_reserved = 0 AND is_occupied = 0
                """,
                (user_id, data.slot_id),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                raise ValueError("Slot not available")

            payment_id = PaymentService.record_payment(
                cursor,
                user_id=user_id,
                amount=amount,
                method=data.method,
                type_="parking",
                reference_id=reservation_id,
                status="completed",
                description=f"Parking at {slot_row['location']} (slot {slot_row['slot_number']})",
            )
            reservation = _fetch_reservation(cursor, reservation_id)
            conn.commit()
        finally:
            conn.close()

        logger.info("User %s reserved slot %s (reservation %s, %.2f)", user_id, data.slot_id, reservation_id, amount)
        await NotificationService.notify(
            user_id,
            "Parking Reserved",
            f"Slot {slot_row['slot_number']} at {slot_row['location']} is reserved for you.",
            "parking",
        )
        await cls._slot_changed(reservation.slot)
        return ReservationBooked(
            reservation=reservation,
            payment=PaymentRef(id=payment_id, amount=amount),
            check_in_code=code,
        )

    @classmethod
    async def list_reservations(cls, user_id: int) -> List[ReservationRead]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            ids = [
                row["id"]
                for row in cursor.execute(
                    "SELECT id FROM reservations WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                    (user_id,),
                ).fetchall()
            ]
            return [_fetch_reservation(cursor, reservation_id) for reservation_id in ids]
        finally:
            conn.close()

    @classmethod
    async def cancel(cls, user_id: int, reservation_id: int) -> ReservationCancelled:
        """Cancel an active reservation and release its slot.

        The parking payment is refunded when the reservation starts at
        least ``FREE_CANCELLATION_HOURS`` from now.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT * FROM reservations WHERE id = ? AND user_id = ?", (reservation_id, user_id)
            ).fetchone()
            if not row:
                raise LookupError("Reservation not found")
            if row["status"] != "active":
                raise ValueError("Cannot cancel this reservation")

            start = as_utc(datetime.fromisoformat(row["start_time"]))
            hours_until_start = (start - datetime.now(timezone.utc)).total_seconds() / 3600
            refund_amount = 0.0
            payment = PaymentService.find_for_reference(cursor, "parking", reservation_id)
            if hours_until_start >= FREE_CANCELLATION_HOURS and payment and payment["status"] == "completed":
                PaymentService.transition_for_reference(cursor, "parking", reservation_id, ("completed",), "refunded")
                refund_amount = payment["amount"]

            cursor.execute(
                "UPDATE reservations SET status = 'cancelled', updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (reservation_id,),
            )
            _release_slot(cursor, row["slot_id"])
            reservation = _fetch_reservation(cursor, reservation_id)
            conn.commit()
        finally:
            conn.close()

        logger.info("Reservation %s cancelled, refund %.2f", reservation_id, refund_amount)
        message = "Your parking reservation has been cancelled."
        if refund_amount:
            message += f" ${refund_amount:.2f} will be refunded."
        await NotificationService.notify(user_id, "Reservation Cancelled", message, "parking")
        if reservation.slot:
            await cls._slot_changed(reservation.slot)
        return ReservationCancelled(message="Reservation cancelled", refund_amount=refund_amount, reservation=reservation)

    @classmethod
    async def check_in(cls, user_id: int, code: str) -> ParkingSlotRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT slot_id FROM reservations WHERE check_in_code = ? AND user_id = ? AND status = 'active'",
                (code, user_id),
            ).fetchone()
            if not row:
                raise ValueError("Invalid check-in code or reservation")
            cursor.execute(
                "UPDATE parking_slots SET is_occupied = 1, last_updated = CURRENT_TIMESTAMP WHERE id = ?",
                (row["slot_id"],),
            )
            slot = _slot(_fetch_slot(cursor, row["slot_id"]))
            conn.commit()
        finally:
            conn.close()
        await cls._slot_changed(slot)
        return slot

    @classmethod
    async def check_out(cls, user_id: int, slot_id: int) -> ParkingSlotRead:
        """Release the slot and complete the caller's active reservation on it."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id FROM reservations WHERE slot_id = ? AND user_id = ? AND status = 'active'",
                (slot_id, user_id),
            ).fetchone()
            if not row:
                raise ValueError("No active reservation found")
            _release_slot(cursor, slot_id)
            cursor.execute(
                "UPDATE reservations SET status = 'completed', updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (row["id"],),
            )
            cursor.execute("UPDATE users SET total_parking = total_parking + 1 WHERE id = ?", (user_id,))
            slot = _slot(_fetch_slot(cursor, slot_id))
            conn.commit()
        finally:
            conn.close()
        await cls._slot_changed(slot)
        return slot

    @classmethod
    async def get_analytics(cls, user_id: int) -> ParkingAnalytics:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT status, start_time, end_time FROM reservations WHERE user_id = ?", (user_id,)
            ).fetchall()
            spent = conn.execute(
                """
                SELECT COALESCE(SUM(amount), 0) AS total FROM payments
                WHERE user_id = ? AND type = 'parking' AND status != 'refunded'
                """,
                (user_id,),
            ).fetchone()["total"]
        finally:
            conn.close()
        durations = [
            (as_utc(datetime.fromisoformat(r["end_time"])) - as_utc(datetime.fromisoformat(r["start_time"]))).total_seconds() / 3600
            for r in rows
        ]
        return ParkingAnalytics(
            total_reservations=len(rows),
            active_reservations=sum(1 for r in rows if r["status"] == "active"),
            total_spent=round(float(spent), 2),
            average_duration=round(sum(durations) / len(durations), 2) if durations else 0.0,
        )
