from celery import Celery
from celery.schedules import crontab

from goldfolio.config import settings

celery_app = Celery(
    "goldfolio",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["goldfolio.workers.tasks"],
)

celery_app.conf.update(
    timezone="UTC",
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    beat_schedule={
        # 14:00 IST
        "daily-gold-price-fetch": {
            "task": "fetch_daily_gold_price",
            "schedule": crontab(hour=8, minute=30),
        },
    },
)
