# cartshare/tasks/expire.py
from cartshare.celery_worker import celery_app
from cartshare.data.database import SessionLocal
from cartshare.services.expiry_sweeper import ExpirySweeper
from cartshare.utils.logging import get_logger
from cartshare.utils.retry import db_retry

logger = get_logger(__name__)


@db_retry()
def run_sweep(session_factory=SessionLocal) -> int:
    db = session_factory()
    try:
        return ExpirySweeper(db).sweep()
    finally:
        db.close()


@db_retry()
def run_purge(session_factory=SessionLocal) -> int:
    db = session_factory()
    try:
        return ExpirySweeper(db).purge()
    finally:
        db.close()


@celery_app.task(name="cartshare.tasks.expire.expire_shareable_carts_task")
def expire_shareable_carts_task():
    logger.info("Expire shareable carts task started")
    return run_sweep()


@celery_app.task(name="cartshare.tasks.expire.purge_shareable_carts_task")
def purge_shareable_carts_task():
    logger.info("Purge shareable carts task started")
    return run_purge()
