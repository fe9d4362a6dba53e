# cartshare/celery_worker.py
from celery import Celery

from cartshare.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    SHARE_SWEEP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "cartshare",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAZNE: explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = ("cartshare.tasks.expire",)

celery_app.conf.beat_schedule = {
    "expire-shareable-carts": {
        "task": "cartshare.tasks.expire.expire_shareable_carts_task",
        "schedule": SHARE_SWEEP_INTERVAL_SECONDS,
    },
    "purge-shareable-carts-daily": {
        "task": "cartshare.tasks.expire.purge_shareable_carts_task",
        "schedule": 24 * 60 * 60.0,
    },
}

celery_app.conf.timezone = "UTC"
