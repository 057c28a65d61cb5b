from typing import Optional, List, Tuple, Dict
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update, delete, case

from pharmacy.domain.notifications.models import Notification


class NotificationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def add(self, notification: Notification) -> Notification:
        self.db.add(notification)
        return notification

    async def get(self, notification_id: str) -> Optional[Notification]:
        result = await self.db.execute(select(Notification).where(Notification.id == notification_id))
        return result.scalar_one_or_none()

    async def get_unread_by_key(self, alert_key: str) -> Optional[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.alert_key == alert_key, Notification.read == False)  # noqa: E712
            .order_by(Notification.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list(
        self,
        unread_only: bool = False,
        type: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Notification], int]:
        query = select(Notification)
        if unread_only:
            query = query.where(Notification.read == False)  # noqa: E712
        if type:
            query = query.where(Notification.type == type)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(Notification.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def read_counts(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Notification.read, func.count(Notification.id)).group_by(Notification.read)
        )
        counts = {"read": 0, "unread": 0}
        for read, count in result.all():
            counts["read" if read else "unread"] = count
        return counts

    async def counts_by_type(self) -> List[dict]:
        unread = func.sum(case((Notification.read == False, 1), else_=0))  # noqa: E712
        result = await self.db.execute(
            select(Notification.type, func.count(Notification.id), unread)
            .group_by(Notification.type)
            .order_by(Notification.type)
        )
        return [
            {"type": type_, "count": count, "unread": int(unread_count or 0)}
            for type_, count, unread_count in result.all()
        ]

    async def mark_all_read(self, now: datetime) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.read == False)  # noqa: E712
            .values(read=True, read_at=now, updated_at=now)
        )
        return result.rowcount or 0

    async def delete_expired(self, now: datetime) -> int:
        result = await self.db.execute(delete(Notification).where(Notification.expires_at < now))
        return result.rowcount or 0
