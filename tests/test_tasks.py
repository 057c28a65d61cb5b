import asyncio
import pytest
from datetime import date, datetime, timedelta
from sqlalchemy import select
from sqlalchemy.pool import NullPool

from pharmacy.core.celery_app import celery_app
from pharmacy.core.config import settings
from pharmacy.infrastructure.database import build_engine, build_session_factory, init_db
from pharmacy.domain.inventory.models import Medicine
from pharmacy.domain.inventory.service import InventoryService, CategoryService, SupplierService
from pharmacy.domain.notifications.models import Notification
from pharmacy.domain.notifications.service import NotificationService
from pharmacy.tasks.inventory_tasks import (
    refresh_statuses, cleanup_expired, task_engine, refresh_medicine_statuses, cleanup_notifications
)


@pytest.mark.unit
def test_status_refresh_is_scheduled_daily():
    entry = celery_app.conf.beat_schedule["refresh-medicine-statuses"]
    assert entry["task"] == "pharmacy.tasks.inventory_tasks.refresh_medicine_statuses"
    assert entry["schedule"].hour == {0}
    assert entry["schedule"].minute == {5}


@pytest.mark.unit
def test_notification_cleanup_is_scheduled_daily():
    entry = celery_app.conf.beat_schedule["cleanup-notifications"]
    assert entry["task"] == "pharmacy.tasks.inventory_tasks.cleanup_notifications"


@pytest.mark.unit
def test_task_engine_does_not_pool_connections():
    assert isinstance(task_engine().pool, NullPool)


@pytest.mark.asyncio
async def test_refresh_statuses_task_body(session_factory, make_medicine, reload):
    medicine = await make_medicine(expiry_date=date.today() + timedelta(days=35))

    assert await refresh_statuses(session_factory, today=date.today()) == 0
    assert await refresh_statuses(session_factory, today=date.today() + timedelta(days=10)) == 1
    assert (await reload(Medicine, medicine.id)).status == "expiring-soon"


@pytest.mark.asyncio
async def test_refresh_records_each_alert_once(session_factory, make_medicine):
    await make_medicine(quantity=3, par_level=10)

    await refresh_statuses(session_factory)
    await refresh_statuses(session_factory)

    async with session_factory() as session:
        notifications = (await session.execute(select(Notification))).scalars().all()
    assert [n.alert_key for n in notifications] == ["low-stock"]
    assert notifications[0].type == "low-stock"
    assert notifications[0].data == {"count": 1}


@pytest.mark.asyncio
async def test_cleanup_task_body(session_factory):
    async with session_factory() as session:
        service = NotificationService(session)
        # Created two days ago with a one-day lifetime
        await service.create_notification(
            {"type": "system", "title": "Old", "message": "Stale", "expires_at": datetime.utcnow() - timedelta(days=1)},
            now=datetime.utcnow() - timedelta(days=2),
        )
        await service.create_notification({"type": "system", "title": "New", "message": "Fresh"})

    assert await cleanup_expired(session_factory) == 1


def test_celery_tasks_survive_repeated_runs(tmp_path, monkeypatch):
    """Each run opens and closes its own event loop against the same database."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'worker.db'}"

    async def seed():
        engine = build_engine(url)
        await init_db(engine)
        async with build_session_factory(engine)() as session:
            category = await CategoryService(session).create_category({"name": "Ophthalmic"})
            supplier = await SupplierService(session).create_supplier({
                "name": "Vision Pharma",
                "contact": "+919800000002",
                "email": "orders@vision.example.com",
            })
            await InventoryService(session).create_medicine(
                {
                    "name": "Eye Drops",
                    "category_id": category.id,
                    "batch": "EYE-01",
                    "expiry_date": date.today() + timedelta(days=10),
                    "quantity": 20,
                    "price": 40.0,
                    "mrp": 55.0,
                    "supplier_id": supplier.id,
                    "par_level": 5,
                },
                today=date.today() - timedelta(days=30),
            )
        await engine.dispose()

    asyncio.run(seed())
    monkeypatch.setattr(settings, "DATABASE_URL", url)

    assert refresh_medicine_statuses() == 1
    assert refresh_medicine_statuses() == 0
    assert cleanup_notifications() == 0
