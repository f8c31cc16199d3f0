# mealplan/celery_worker.py
from celery import Celery

from mealplan.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "mealplan",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks imported explicitly so the worker registers them
celery_app.conf.imports = (
    "mealplan.tasks.expire",
    "mealplan.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-carts-every-minute": {
        "task": "mealplan.tasks.expire.expire_carts_task",
        "schedule": 60.0,
    },
}

celery_app.conf.timezone = "UTC"
