from pharmacy.core.celery_app import celery_app
from pharmacy.core.config import settings
from pharmacy.infrastructure.database import build_engine, build_session_factory
from pharmacy.domain.inventory.service import InventoryService
from pharmacy.domain.dashboard.service import DashboardService
from pharmacy.domain.notifications.service import NotificationService
from contextlib import asynccontextmanager
from sqlalchemy.pool import NullPool
from loguru import logger
from datetime import date
from typing import Optional
import asyncio


def task_engine():
    """Unpooled engine: each task run gets its own event loop, and a pooled
    connection must never be reused from a loop that has since closed."""
    return build_engine(settings.DATABASE_URL, poolclass=NullPool)


@asynccontextmanager
async def task_session(session_factory=None):
    if session_factory is not None:
        async with session_factory() as db:
            yield db
        return

    engine = task_engine()
    try:
        async with build_session_factory(engine)() as db:
            yield db
    finally:
        await engine.dispose()


async def refresh_statuses(session_factory=None, today: Optional[date] = None) -> int:
    """Re-derive stored statuses, then record the resulting inventory alerts"""
    async with task_session(session_factory) as db:
        changed = await InventoryService(db).refresh_statuses(today)
        alerts = await DashboardService(db).alerts()
        await NotificationService(db).record_alerts(alerts)
        return changed


async def cleanup_expired(session_factory=None) -> int:
    async with task_session(session_factory) as db:
        return await NotificationService(db).cleanup()


@celery_app.task(name="pharmacy.tasks.inventory_tasks.refresh_medicine_statuses")
def refresh_medicine_statuses():
    """
    Celery task to re-derive every medicine's stored status for today.
    """
    logger.info("Background task: refreshing medicine statuses")
    changed = asyncio.run(refresh_statuses())
    logger.info(f"Medicine status refresh finished, {changed} changed")
    return changed


@celery_app.task(name="pharmacy.tasks.inventory_tasks.cleanup_notifications")
def cleanup_notifications():
    """
    Celery task to delete notifications past their expiry.
    """
    logger.info("Background task: cleaning up expired notifications")
    return asyncio.run(cleanup_expired())
