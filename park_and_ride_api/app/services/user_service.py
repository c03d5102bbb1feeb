"""
Business logic for user accounts, profiles and vehicles.

Users register with a name, email and password; the password is
stored as a PBKDF2 hash (see ``core.security``).  The profile combines
the user row with the user's vehicles and stored payment methods.
Every newly registered user receives a welcome notification.
"""

import json
import logging
import sqlite3
from typing import List, Optional, Tuple

from ..core.db import get_connection
from ..core.security import hash_password, verify_password
from ..schemas.user import (
    PasswordChange,
    Preferences,
    ProfileRead,
    ProfileUpdate,
    UserAnalytics,
    UserCreate,
    UserRead,
    UserSummary,
    VehicleCreate,
    VehicleRead,
)
from .notification_service import NotificationService
from .payment_service import PaymentService

logger = logging.getLogger(__name__)

# Columns a profile update may write directly.
PROFILE_COLUMNS = ("name", "phone", "date_of_birth", "address", "avatar")


def split_name(name: str) -> Tuple[str, str]:
    """Split a full name into first name and the remainder."""
    first, _, last = (name or "").strip().partition(" ")
    return first, last.strip()


def _summary(row: sqlite3.Row) -> UserSummary:
    first, last = split_name(row["name"])
    return UserSummary(id=row["id"], first_name=first, last_name=last, email=row["email"], role=row["role"])


def _preferences(raw: Optional[str]) -> Preferences:
    if not raw:
        return Preferences()
    return Preferences.model_validate(json.loads(raw))


def _insert_vehicle(cursor: sqlite3.Cursor, user_id: int, vehicle: VehicleCreate, is_default: bool) -> int:
    cursor.execute(
        """
        INSERT INTO vehicles (user_id, make, model, year, color, license_plate, is_default)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            user_id,
            vehicle.make,
            vehicle.model,
            vehicle.year,
            vehicle.color,
            vehicle.license_plate,
            1 if is_default else 0,
        ),
    )
    return cursor.lastrowid


class UserService:
    """Operations on users and their profile data."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserSummary:
        """Register a new user.

        Raises ``ValueError`` if the email is already registered.
        """
        logger.info("Registering user %s", data.email)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            existing = cursor.execute("SELECT id FROM users WHERE email = ?", (data.email,)).fetchone()
            if existing:
                raise ValueError("User already exists")
            cursor.execute(
                "INSERT INTO users (name, email, password, phone) VALUES (?, ?, ?, ?)",
                (data.name, data.email, hash_password(data.password), data.phone),
            )
            row = cursor.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone()
            conn.commit()
        except sqlite3.IntegrityError:
            # Lost a race against a concurrent registration of the same email.
            conn.rollback()
            raise ValueError("User already exists")
        finally:
            conn.close()

        await NotificationService.notify(
            row["id"],
            "Welcome to Park & Ride",
            "Thank you for joining Park & Ride! Enjoy your first ride.",
            "welcome",
        )
        return _summary(row)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserSummary]:
        """Return the user for valid credentials, otherwise ``None``.

        Disabled accounts never authenticate.
        """
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email.lower(),)).fetchone()
        finally:
            conn.close()
        if not row or row["disabled"]:
            return None
        if not verify_password(password, row["password"]):
            return None
        return _summary(row)

    @classmethod
    async def get_profile(cls, user_id: int) -> ProfileRead:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise LookupError("User not found")
            vehicles = conn.execute(
                "SELECT * FROM vehicles WHERE user_id = ? ORDER BY id", (user_id,)
            ).fetchall()
        finally:
            conn.close()
        first, last = split_name(row["name"])
        return ProfileRead(
            id=row["id"],
            first_name=first,
            last_name=last,
            email=row["email"],
            role=row["role"],
            phone=row["phone"] or "",
            date_of_birth=row["date_of_birth"] or "",
            address=row["address"] or "",
            avatar=row["avatar"] or None,
            rating=row["rating"] or 0,
            total_rides=row["total_rides"] or 0,
            total_parking=row["total_parking"] or 0,
            member_since=row["created_at"],
            preferences=_preferences(row["preferences"]),
            vehicles=[VehicleRead.model_validate(dict(v)) for v in vehicles],
            payment_methods=await PaymentService.list_methods(user_id),
        )

    @classmethod
    async def update_profile(cls, user_id: int, data: ProfileUpdate) -> ProfileRead:
        """Apply a partial profile update and return the new profile."""
        fields = data.model_dump(exclude_unset=True)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone():
                raise LookupError("User not found")

            assignments = []
            values: list = []
            for column in PROFILE_COLUMNS:
                if column in fields and fields[column] is not None:
                    assignments.append(f"{column} = ?")
                    values.append(fields[column])
            if data.preferences is not None:
                assignments.append("preferences = ?")
                values.append(data.preferences.model_dump_json())
            if assignments:
                values.append(user_id)
                cursor.execute(
                    f"UPDATE users SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(values),
                )

            if data.vehicles is not None:
                cursor.execute("DELETE FROM vehicles WHERE user_id = ?", (user_id,))
                for index, vehicle in enumerate(data.vehicles):
                    _insert_vehicle(cursor, user_id, vehicle, is_default=index == 0)
            if data.payment_methods is not None:
                PaymentService.replace_methods(cursor, user_id, data.payment_methods)
            conn.commit()
        finally:
            conn.close()
        logger.info("Profile updated for user %s (%s)", user_id, ", ".join(sorted(fields)) or "no fields")
        return await cls.get_profile(user_id)

    @classmethod
    async def change_password(cls, user_id: int, data: PasswordChange) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT password FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise LookupError("User not found")
            if not verify_password(data.old_password, row["password"]):
                raise ValueError("Old password incorrect")
            cursor.execute(
                "UPDATE users SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (hash_password(data.new_password), user_id),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def get_analytics(cls, user_id: int) -> UserAnalytics:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT loyalty_points, subscriptions, created_at, total_rides, total_parking FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise LookupError("User not found")
        return UserAnalytics(
            loyalty_points=row["loyalty_points"],
            subscriptions=json.loads(row["subscriptions"] or "[]"),
            created_at=row["created_at"],
            total_rides=row["total_rides"],
            total_parking=row["total_parking"],
        )

    @classmethod
    async def add_vehicle(cls, user_id: int, vehicle: VehicleCreate) -> VehicleRead:
        """Add a vehicle; the user's first vehicle becomes the default."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            count = cursor.execute(
                "SELECT COUNT(*) AS count FROM vehicles WHERE user_id = ?", (user_id,)
            ).fetchone()["count"]
            vehicle_id = _insert_vehicle(cursor, user_id, vehicle, is_default=count == 0)
            row = cursor.execute("SELECT * FROM vehicles WHERE id = ?", (vehicle_id,)).fetchone()
            conn.commit()
        finally:
            conn.close()
        return VehicleRead.model_validate(dict(row))

    @classmethod
    async def delete_vehicle(cls, user_id: int, vehicle_id: int) -> None:
        """Delete a vehicle.

        If it was the default, the oldest remaining vehicle takes over.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT is_default FROM vehicles WHERE id = ? AND user_id = ?", (vehicle_id, user_id)
            ).fetchone()
            if not row:
                raise LookupError("Vehicle not found")
            cursor.execute("DELETE FROM vehicles WHERE id = ?", (vehicle_id,))
            if row["is_default"]:
                cursor.execute(
                    """
                    UPDATE vehicles SET is_default = 1
                    WHERE id = (SELECT MIN(id) FROM vehicles WHERE user_id = ?)
                    """,
                    (user_id,),
                )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def set_default_vehicle(cls, user_id: int, vehicle_id: int) -> VehicleRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute(
                "SELECT id FROM vehicles WHERE id = ? AND user_id = ?", (vehicle_id, user_id)
            ).fetchone():
                raise LookupError("Vehicle not found")
            cursor.execute(
                "UPDATE vehicles SET is_default = CASE WHEN id = ? THEN 1 ELSE 0 END WHERE user_id = ?",
                (vehicle_id, user_id),
            )
            row = cursor.execute("SELECT * FROM vehicles WHERE id = ?", (vehicle_id,)).fetchone()
            conn.commit()
        finally:
            conn.close()
        return VehicleRead.model_validate(dict(row))

    @classmethod
    async def update_preferences(cls, user_id: int, preferences: Preferences) -> Preferences:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE users SET preferences = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (preferences.model_dump_json(), user_id),
            )
            if cursor.rowcount == 0:
                raise LookupError("User not found")
            conn.commit()
        finally:
            conn.close()
        return preferences

    @classmethod
    async def list_users(cls) -> List[UserRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT id, name, email, role, disabled, created_at FROM users ORDER BY id"
            ).fetchall()
        finally:
            conn.close()
        return [UserRead.model_validate(dict(row)) for row in rows]
