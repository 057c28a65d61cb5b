"""
Notifications API Routes

Stored alerts with read state for the dashboard bell.
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from pharmacy.infrastructure.database import get_db
from pharmacy.domain.notifications.models import NotificationType
from pharmacy.domain.notifications.service import NotificationService
from pharmacy.api.v1.notifications.schemas import (
    NotificationCreate, NotificationResponse, NotificationList, NotificationStats
)

router = APIRouter(tags=["Notifications"])


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(notification_in: NotificationCreate, db: AsyncSession = Depends(get_db)):
    service = NotificationService(db)
    notification = await service.create_notification(notification_in.model_dump())
    return NotificationResponse.model_validate(notification)


@router.get("", response_model=NotificationList)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    type: Optional[NotificationType] = None,
    db: AsyncSession = Depends(get_db)
):
    """Newest first, with read/unread counts"""
    service = NotificationService(db)
    result = await service.list_notifications(
        unread_only=unread_only,
        type=type.value if type else None,
        page=page,
        limit=limit,
    )
    return NotificationList(
        items=[NotificationResponse.model_validate(n) for n in result["items"]],
        pagination=result["pagination"],
        counts=result["counts"],
    )


@router.get("/stats", response_model=NotificationStats)
async def get_notification_stats(db: AsyncSession = Depends(get_db)):
    service = NotificationService(db)
    return await service.stats()


@router.put("/read-all")
async def mark_all_notifications_read(db: AsyncSession = Depends(get_db)):
    service = NotificationService(db)
    modified = await service.mark_all_read()
    return {"message": "All notifications marked as read", "modified_count": modified}


@router.post("/cleanup")
async def cleanup_notifications(db: AsyncSession = Depends(get_db)):
    """Delete notifications past their expiry"""
    service = NotificationService(db)
    deleted = await service.cleanup()
    return {"message": "Expired notifications cleaned up", "deleted_count": deleted}


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(notification_id: str, db: AsyncSession = Depends(get_db)):
    service = NotificationService(db)
    return NotificationResponse.model_validate(await service.get_notification(notification_id))


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(notification_id: str, db: AsyncSession = Depends(get_db)):
    service = NotificationService(db)
    return NotificationResponse.model_validate(await service.mark_read(notification_id))


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, db: AsyncSession = Depends(get_db)):
    service = NotificationService(db)
    await service.delete_notification(notification_id)
    return {"message": "Notification deleted successfully"}
