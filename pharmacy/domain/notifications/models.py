"""
Notifications Domain Models

Stored alerts shown in the dashboard bell, with read state and expiry.
"""

from sqlalchemy import Column, String, Boolean, DateTime, JSON
from datetime import datetime, timedelta
import uuid
import enum

from pharmacy.infrastructure.database import Base

DEFAULT_LIFETIME_DAYS = 30


def gen_uuid():
    return str(uuid.uuid4())


def default_expiry():
    return datetime.utcnow() + timedelta(days=DEFAULT_LIFETIME_DAYS)


class NotificationType(str, enum.Enum):
    EXPIRY = "expiry"
    LOW_STOCK = "low-stock"
    RESTOCK = "restock"
    PRESCRIPTION = "prescription"
    SYSTEM = "system"
    ALERT = "alert"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    type = Column(String(16), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    message = Column(String(500), nullable=False)
    read = Column(Boolean, nullable=False, default=False, index=True)
    priority = Column(String(8), nullable=False, default=NotificationPriority.NORMAL.value, index=True)
    action_url = Column(String(255), nullable=True)
    action_text = Column(String(50), nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    # Set for generated alerts so a repeat updates the unread one in place
    alert_key = Column(String(64), nullable=True, index=True)
    expires_at = Column(DateTime, nullable=False, default=default_expiry, index=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def mark_read(self, now: datetime) -> None:
        if not self.read:
            self.read = True
            self.read_at = now
