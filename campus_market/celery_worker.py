# campus_market/celery_worker.py
from celery import Celery

from campus_market.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CART_EXPIRY_INTERVAL_SECONDS,
)

celery_app = Celery(
    "campus_market",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly so the worker registers them
celery_app.conf.imports = (
    "campus_market.tasks.expire",
    "campus_market.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-inactive-carts": {
        "task": "campus_market.tasks.expire.expire_inactive_carts_task",
        "schedule": CART_EXPIRY_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
