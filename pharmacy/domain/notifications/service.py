"""
Notification Service Layer

Stored notifications with read state. Inventory alerts are recorded here by
the daily task; delivery to email or phones is not part of this service.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime, timedelta
import math

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import NotFoundError, ValidationError
from pharmacy.domain.notifications.models import (
    Notification, NotificationType, NotificationPriority, DEFAULT_LIFETIME_DAYS, default_expiry
)
from pharmacy.domain.notifications.repository import NotificationRepository

# Dashboard alert priorities mapped onto notification priorities
ALERT_PRIORITIES = {"high": "high", "medium": "normal", "low": "low"}


def _parse_type(value: str) -> str:
    try:
        return NotificationType(value).value
    except ValueError:
        raise ValidationError("Invalid notification type", details={"type": value})


class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = NotificationRepository(db)

    async def create_notification(self, notification_in: Dict[str, Any], now: Optional[datetime] = None) -> Notification:
        now = now or datetime.utcnow()
        data = {k: v for k, v in notification_in.items() if v is not None}
        data["type"] = _parse_type(data["type"])
        data.setdefault("expires_at", now + timedelta(days=DEFAULT_LIFETIME_DAYS))
        if data["expires_at"] <= now:
            raise ValidationError("Expiry must be in the future", details={"expires_at": str(data["expires_at"])})

        notification = self.repo.add(Notification(**data))
        await self.db.commit()
        logger.info(f"Notification '{notification.title}' ({notification.type}) created")
        return notification

    async def get_notification(self, notification_id: str) -> Notification:
        notification = await self.repo.get(notification_id)
        if not notification:
            raise NotFoundError("Notification not found", details={"notification_id": notification_id})
        return notification

    async def list_notifications(
        self,
        unread_only: bool = False,
        type: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        if type is not None:
            type = _parse_type(type)
        items, total = await self.repo.list(
            unread_only=unread_only, type=type, skip=(page - 1) * limit, limit=limit
        )
        counts = await self.repo.read_counts()
        return {
            "items": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if limit else 0,
            },
            "counts": {**counts, "total": counts["read"] + counts["unread"]},
        }

    async def mark_read(self, notification_id: str, now: Optional[datetime] = None) -> Notification:
        notification = await self.get_notification(notification_id)
        notification.mark_read(now or datetime.utcnow())
        await self.db.commit()
        return notification

    async def mark_all_read(self, now: Optional[datetime] = None) -> int:
        modified = await self.repo.mark_all_read(now or datetime.utcnow())
        await self.db.commit()
        logger.info(f"Marked {modified} notification(s) as read")
        return modified

    async def delete_notification(self, notification_id: str) -> None:
        notification = await self.get_notification(notification_id)
        await self.db.delete(notification)
        await self.db.commit()

    async def stats(self) -> Dict[str, Any]:
        counts = await self.repo.read_counts()
        return {
            "total": counts["read"] + counts["unread"],
            "unread": counts["unread"],
            "read": counts["read"],
            "by_type": await self.repo.counts_by_type(),
        }

    async def cleanup(self, now: Optional[datetime] = None) -> int:
        """Delete notifications whose expiry has passed"""
        deleted = await self.repo.delete_expired(now or datetime.utcnow())
        await self.db.commit()
        logger.info(f"Cleaned up {deleted} expired notification(s)")
        return deleted

    async def record_alerts(self, alerts: List[Dict[str, Any]]) -> List[Notification]:
        """Store dashboard alerts as notifications.

        An alert that already has an unread notification refreshes that one
        instead of adding another.
        """
        recorded = []
        for alert in alerts:
            fields = {
                "type": _parse_type(alert["type"]),
                "title": alert["title"],
                "message": alert["message"],
                "priority": ALERT_PRIORITIES.get(alert.get("priority"), NotificationPriority.NORMAL.value),
                "action_url": alert.get("action_url"),
                "data": {"count": alert["count"]},
            }
            notification = await self.repo.get_unread_by_key(alert["id"])
            if notification:
                for field, value in fields.items():
                    setattr(notification, field, value)
                notification.expires_at = default_expiry()
            else:
                notification = self.repo.add(Notification(alert_key=alert["id"], **fields))
            recorded.append(notification)
        await self.db.commit()
        logger.info(f"Recorded {len(recorded)} inventory alert(s)")
        return recorded
