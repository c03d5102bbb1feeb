"""
Business logic for in-app notifications.

Other services call :meth:`NotificationService.notify` whenever
something happens that the user should hear about.  The notification
is stored and pushed to the user's socket room as ``new-notification``.
"""

import json
import logging
from typing import List

from ..core.db import get_connection
from ..schemas.notification import NotificationRead, NotificationSettings
from .socket_service import SocketService, user_room

logger = logging.getLogger(__name__)


class NotificationService:
    """Store, list and push user notifications."""

    @classmethod
    async def notify(cls, user_id: int, title: str, message: str, type_: str = "system") -> NotificationRead:
        """Create a notification for ``user_id`` and push it over the socket."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO notifications (user_id, title, message, type) VALUES (?, ?, ?, ?)",
                (user_id, title, message, type_),
            )
            row = cursor.execute(
                "SELECT * FROM notifications WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
            conn.commit()
        finally:
            conn.close()
        notification = NotificationRead.model_validate(dict(row))
        await SocketService.emit_to_room(
            user_room(user_id), "new-notification", notification.model_dump(mode="json")
        )
        logger.debug("Notification %s sent to user %s", notification.id, user_id)
        return notification

    @classmethod
    async def list_notifications(cls, user_id: int) -> List[NotificationRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM notifications WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        return [NotificationRead.model_validate(dict(row)) for row in rows]

    @classmethod
    async def mark_read(cls, user_id: int, notification_id: int) -> NotificationRead:
        """Mark a notification as read.

        Raises ``LookupError`` if it does not exist or belongs to another user.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE notifications SET is_read = 1 WHERE id = ? AND user_id = ?",
                (notification_id, user_id),
            )
            if cursor.rowcount == 0:
                raise LookupError("Notification not found")
            row = cursor.execute(
                "SELECT * FROM notifications WHERE id = ?", (notification_id,)
            ).fetchone()
            conn.commit()
        finally:
            conn.close()
        return NotificationRead.model_validate(dict(row))

    @classmethod
    async def delete_notification(cls, user_id: int, notification_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM notifications WHERE id = ? AND user_id = ?",
                (notification_id, user_id),
            )
            if cursor.rowcount == 0:
                raise LookupError("Notification not found")
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def get_settings(cls, user_id: int) -> NotificationSettings:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT notification_settings FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise LookupError("User not found")
        if not row["notification_settings"]:
            return NotificationSettings()
        return NotificationSettings.model_validate(json.loads(row["notification_settings"]))

    @classmethod
    async def update_settings(cls, user_id: int, new_settings: NotificationSettings) -> NotificationSettings:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE users SET notification_settings = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (new_settings.model_dump_json(), user_id),
            )
            if cursor.rowcount == 0:
                raise LookupError("User not found")
            conn.commit()
        finally:
            conn.close()
        return new_settings
