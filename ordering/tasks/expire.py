# ordering/tasks/expire.py
from datetime import datetime, timezone

from ordering.celery_worker import celery_app
from ordering.data.database import SessionLocal
from ordering.repos.idempotency_repo import IdempotencyRepo
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="ordering.tasks.expire.purge_idempotency_keys_task")
def purge_idempotency_keys_task():
    logger.info("Purge idempotency keys task started")

    db = SessionLocal()
    try:
        deleted = IdempotencyRepo(db).purge_expired(datetime.now(timezone.utc))
        logger.info(f"Purged {deleted} expired idempotency keys")
        return deleted
    finally:
        db.close()
