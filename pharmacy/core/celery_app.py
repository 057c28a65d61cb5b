from celery import Celery
from celery.schedules import crontab
from pharmacy.core.config import settings

celery_app = Celery("pharmacy_tasks", broker=settings.REDIS_URL, backend=settings.REDIS_URL)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        # Days passing move batches towards expiry without any stock change
        "refresh-medicine-statuses": {
            "task": "pharmacy.tasks.inventory_tasks.refresh_medicine_statuses",
            "schedule": crontab(hour=0, minute=5),
        },
        "cleanup-notifications": {
            "task": "pharmacy.tasks.inventory_tasks.cleanup_notifications",
            "schedule": crontab(hour=1, minute=0),
        },
    },
)

# Auto-discover tasks from pharmacy/tasks
celery_app.autodiscover_tasks(["pharmacy.tasks"], related_name="inventory_tasks")
