import pytest
from datetime import datetime, timedelta
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import NotFoundError, ValidationError
from pharmacy.domain.notifications.service import NotificationService


@pytest.fixture
async def notification_service(db_session: AsyncSession):
    """Notification service fixture"""
    return NotificationService(db_session)


@pytest.mark.asyncio
async def test_create_notification_defaults(notification_service: NotificationService):
    now = datetime.utcnow()
    notification = await notification_service.create_notification(
        {"type": "restock", "title": "Insulin restocked", "message": "40 units received"}, now=now
    )

    assert notification.read is False
    assert notification.priority == "normal"
    assert notification.data == {}
    assert notification.expires_at == now + timedelta(days=30)


@pytest.mark.asyncio
async def test_create_notification_rejects_unknown_type(notification_service: NotificationService):
    with pytest.raises(ValidationError):
        await notification_service.create_notification({"type": "marketing", "title": "x", "message": "y"})


@pytest.mark.asyncio
async def test_read_state_and_counts(notification_service: NotificationService):
    first = await notification_service.create_notification({"type": "system", "title": "A", "message": "a"})
    await notification_service.create_notification({"type": "expiry", "title": "B", "message": "b"})
    await notification_service.create_notification({"type": "expiry", "title": "C", "message": "c"})

    read = await notification_service.mark_read(first.id)
    assert read.read is True
    assert read.read_at is not None

    unread = await notification_service.list_notifications(unread_only=True)
    assert unread["pagination"]["total"] == 2
    assert unread["counts"] == {"read": 1, "unread": 2, "total": 3}

    expiry_only = await notification_service.list_notifications(type="expiry")
    assert {n.title for n in expiry_only["items"]} == {"B", "C"}

    stats = await notification_service.stats()
    assert stats["unread"] == 2
    assert stats["by_type"] == [
        {"type": "expiry", "count": 2, "unread": 2},
        {"type": "system", "count": 1, "unread": 0},
    ]

    assert await notification_service.mark_all_read() == 2
    assert (await notification_service.stats())["unread"] == 0


@pytest.mark.asyncio
async def test_delete_and_missing(notification_service: NotificationService):
    notification = await notification_service.create_notification({"type": "alert", "title": "A", "message": "a"})
    notification_id = notification.id

    await notification_service.delete_notification(notification_id)
    with pytest.raises(NotFoundError):
        await notification_service.get_notification(notification_id)
    with pytest.raises(NotFoundError):
        await notification_service.mark_read("missing")


@pytest.mark.asyncio
async def test_record_alerts_refreshes_unread_alert(notification_service: NotificationService):
    alert = {
        "id": "low-stock",
        "type": "low-stock",
        "title": "Low Stock Items",
        "message": "2 medicines are at or below their par level",
        "count": 2,
        "priority": "medium",
        "action_url": "/inventory?filter=low-stock",
    }
    [first] = await notification_service.record_alerts([alert])
    [again] = await notification_service.record_alerts([{**alert, "count": 3, "message": "3 medicines"}])

    assert again.id == first.id
    assert again.data == {"count": 3}
    assert again.priority == "normal"

    # Once read, the next occurrence is a new notification
    await notification_service.mark_read(first.id)
    [fresh] = await notification_service.record_alerts([alert])
    assert fresh.id != first.id


@pytest.mark.asyncio
@pytest.mark.integration
async def test_notification_endpoints(client: AsyncClient):
    created = await client.post("/api/v1/notifications", json={
        "type": "prescription",
        "title": "RX000001 ready",
        "message": "Prescription is ready for pickup",
        "priority": "high",
    })
    assert created.status_code == 201, created.text
    notification_id = created.json()["id"]

    listing = await client.get("/api/v1/notifications", params={"unread_only": True})
    assert listing.status_code == 200
    assert listing.json()["counts"] == {"unread": 1, "read": 0, "total": 1}

    read = await client.put(f"/api/v1/notifications/{notification_id}/read")
    assert read.json()["read"] is True

    stats = await client.get("/api/v1/notifications/stats")
    assert stats.json()["read"] == 1

    read_all = await client.put("/api/v1/notifications/read-all")
    assert read_all.json()["modified_count"] == 0

    cleanup = await client.post("/api/v1/notifications/cleanup")
    assert cleanup.json()["deleted_count"] == 0

    deleted = await client.delete(f"/api/v1/notifications/{notification_id}")
    assert deleted.status_code == 200
    missing = await client.get(f"/api/v1/notifications/{notification_id}")
    assert missing.status_code == 404

    bad_type = await client.post("/api/v1/notifications", json={"type": "spam", "title": "x", "message": "y"})
    assert bad_type.status_code == 400
