from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from pharmacy.domain.notifications.models import NotificationType, NotificationPriority


class NotificationCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: NotificationType
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=500)
    priority: NotificationPriority = NotificationPriority.NORMAL
    action_url: Optional[str] = Field(None, max_length=255)
    action_text: Optional[str] = Field(None, max_length=50)
    data: Dict[str, Any] = Field(default_factory=dict)
    expires_at: Optional[datetime] = None


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    read: bool
    priority: str
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    data: Dict[str, Any]
    expires_at: datetime
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationPagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class NotificationCounts(BaseModel):
    unread: int
    read: int
    total: int


class NotificationList(BaseModel):
    items: List[NotificationResponse]
    pagination: NotificationPagination
    counts: NotificationCounts


class NotificationTypeCount(BaseModel):
    type: str
    count: int
    unread: int


class NotificationStats(BaseModel):
    total: int
    unread: int
    read: int
    by_type: List[NotificationTypeCount]
