"""
Business logic for payments and stored payment methods.

Payments are never created directly by clients: the parking service
records one for every reservation and the ride service for every
booked ride.  Both use :meth:`PaymentService.record_payment` on their
own cursor so the payment is committed together with the booking.

Status rules:

* ``completed`` payments can be refunded (``refunded``).
* A ride payment stays ``pending`` until the ride completes, and turns
  ``failed`` if the ride is cancelled first.
"""

import logging
import sqlite3
from typing import Iterable, List, Optional

from ..core.db import get_connection
from ..schemas.payment import (
    PaymentMethodCreate,
    PaymentMethodRead,
    PaymentRead,
    PaymentStats,
    Transaction,
)
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for payment history, refunds and payment methods."""

    # ------------------------------------------------------------------
    # Helpers used by the booking services inside their own transaction
    # ------------------------------------------------------------------

    @staticmethod
    def record_payment(
        cursor: sqlite3.Cursor,
        user_id: int,
        amount: float,
        method: str,
        type_: str,
        reference_id: int,
        status: str = "pending",
        description: Optional[str] = None,
    ) -> int:
        """Insert a payment row and return its ID."""
        cursor.execute(
            """
            INSERT INTO payments (user_id, amount, method, status, type, reference_id, description)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, amount, method, status, type_, str(reference_id), description),
        )
        return cursor.lastrowid

    @staticmethod
    def find_for_reference(cursor: sqlite3.Cursor, type_: str, reference_id: int) -> Optional[sqlite3.Row]:
        return cursor.execute(
            "SELECT * FROM payments WHERE type = ? AND reference_id = ? ORDER BY id DESC LIMIT 1",
            (type_, str(reference_id)),
        ).fetchone()

    @staticmethod
    def transition_for_reference(
        cursor: sqlite3.Cursor,
        type_: str,
        reference_id: int,
        from_statuses: Iterable[str],
        to_status: str,
    ) -> int:
        """Move payments of a booking from any of ``from_statuses`` to ``to_status``.

        Returns the number of payments updated.
        """
        from_statuses = tuple(from_statuses)
        placeholders = ", ".join("?" for _ in from_statuses)
        cursor.execute(
            f"""
            UPDATE payments SET status = ?, updated_at = CURRENT_TIMESTAMP
            WHERE type = ? AND reference_id = ? AND status IN ({placeholders})
            """,
            (to_status, type_, str(reference_id), *from_statuses),
        )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Payment history
    # ------------------------------------------------------------------

    @classmethod
    async def list_payments(cls, user_id: int) -> List[PaymentRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM payments WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        return [PaymentRead.model_validate(dict(row)) for row in rows]

    @classmethod
    async def get_payment(cls, user_id: int, payment_id: int) -> PaymentRead:
        """Return one of the user's payments or raise ``LookupError``."""
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM payments WHERE id = ? AND user_id = ?", (payment_id, user_id)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise LookupError("Payment not found")
        return PaymentRead.model_validate(dict(row))

    @classmethod
    async def refund_payment(cls, user_id: int, payment_id: int) -> PaymentRead:
        """Refund a completed payment.

        Raises ``LookupError`` for unknown or foreign payments and
        ``ValueError`` when the payment is not ``completed``.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT status FROM payments WHERE id = ? AND user_id = ?", (payment_id, user_id)
            ).fetchone()
            if not row:
                raise LookupError("Payment not found")
            if row["status"] != "completed":
                raise ValueError("Cannot refund this payment")
            cursor.execute(
                "UPDATE payments SET status = 'refunded', updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (payment_id,),
            )
            updated = cursor.execute("SELECT * FROM payments WHERE id = ?", (payment_id,)).fetchone()
            conn.commit()
        finally:
            conn.close()
        payment = PaymentRead.model_validate(dict(updated))
        logger.info("Payment %s refunded for user %s", payment_id, user_id)
        await NotificationService.notify(
            user_id,
            "Refund Processed",
            f"Your payment of ${payment.amount:.2f} has been refunded.",
            "payment",
        )
        return payment

    @classmethod
    async def list_transactions(cls, user_id: int) -> List[Transaction]:
        payments = await cls.list_payments(user_id)
        return [
            Transaction(
                id=p.id,
                type=p.type,
                amount=p.amount,
                status=p.status,
                date=p.created_at,
                description=p.description or f"{p.type.capitalize()} payment",
            )
            for p in payments
        ]

    @classmethod
    async def get_stats(cls, user_id: int) -> PaymentStats:
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT
                    COALESCE(SUM(CASE WHEN status = 'completed' THEN amount END), 0) AS total_spent,
                    COUNT(DISTINCT CASE WHEN status = 'completed' THEN strftime('%Y-%m', created_at) END) AS months,
                    COUNT(*) AS total_transactions,
                    COALESCE(SUM(CASE WHEN status = 'completed'
                                       AND strftime('%Y-%m', created_at) = strftime('%Y-%m', 'now')
                                      THEN amount END), 0) AS this_month
                FROM payments WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        months = row["months"] or 0
        total_spent = float(row["total_spent"])
        return PaymentStats(
            total_spent=round(total_spent, 2),
            monthly_average=round(total_spent / months, 2) if months else 0.0,
            total_transactions=row["total_transactions"],
            this_month=round(float(row["this_month"]), 2),
        )

    # ------------------------------------------------------------------
    # Stored payment methods
    # ------------------------------------------------------------------

    @classmethod
    async def list_methods(cls, user_id: int) -> List[PaymentMethodRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM payment_methods WHERE user_id = ? ORDER BY id", (user_id,)
            ).fetchall()
        finally:
            conn.close()
        return [PaymentMethodRead.model_validate(dict(row)) for row in rows]

    @staticmethod
    def _insert_method(cursor: sqlite3.Cursor, user_id: int, method: PaymentMethodCreate, is_default: bool) -> int:
        cursor.execute(
            "INSERT INTO payment_methods (user_id, type, name, last_four, is_default) VALUES (?, ?, ?, ?, ?)",
            (user_id, method.type, method.name, method.last_four, 1 if is_default else 0),
        )
        return cursor.lastrowid

    @classmethod
    async def add_method(cls, user_id: int, method: PaymentMethodCreate) -> PaymentMethodRead:
        """Store a payment method; the first one becomes the default."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            count = cursor.execute(
                "SELECT COUNT(*) AS count FROM payment_methods WHERE user_id = ?", (user_id,)
            ).fetchone()["count"]
            method_id = cls._insert_method(cursor, user_id, method, is_default=count == 0)
            row = cursor.execute("SELECT * FROM payment_methods WHERE id = ?", (method_id,)).fetchone()
            conn.commit()
        finally:
            conn.close()
        return PaymentMethodRead.model_validate(dict(row))

    @classmethod
    def replace_methods(cls, cursor: sqlite3.Cursor, user_id: int, methods: List[PaymentMethodCreate]) -> None:
        """Replace all stored methods of a user (profile update)."""
        cursor.execute("DELETE FROM payment_methods WHERE user_id = ?", (user_id,))
        for index, method in enumerate(methods):
            cls._insert_method(cursor, user_id, method, is_default=index == 0)
