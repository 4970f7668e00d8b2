# ordering/tasks/outbox.py
from ordering.celery_worker import celery_app
from ordering.data.database import SessionLocal
from ordering.services.event_publisher import EventPublisher
from ordering.services.outbox import OutboxDispatcher
from ordering.utils.settings import OUTBOX_RELAY_BATCH_SIZE
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="ordering.tasks.outbox.relay_outbox_task")
def relay_outbox_task(batch_size: int = OUTBOX_RELAY_BATCH_SIZE):
    db = SessionLocal()
    try:
        published = OutboxDispatcher(db, EventPublisher()).relay_pending(batch_size)
        if published:
            logger.info(f"Outbox relay published {published} events")
        return published
    finally:
        db.close()
