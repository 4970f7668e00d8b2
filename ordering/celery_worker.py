# ordering/celery_worker.py
from celery import Celery

from ordering.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    OUTBOX_RELAY_INTERVAL_SECONDS,
)

celery_app = Celery(
    "ordering",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly so celery registers them
celery_app.conf.imports = (
    "ordering.services.event_publisher",
    "ordering.tasks.outbox",
    "ordering.tasks.expire",
)

# at-least-once: ack only after the consumer finished
celery_app.conf.task_acks_late = True
celery_app.conf.task_reject_on_worker_lost = True

celery_app.conf.beat_schedule = {
    "relay-outbox": {
        "task": "ordering.tasks.outbox.relay_outbox_task",
        "schedule": OUTBOX_RELAY_INTERVAL_SECONDS,
    },
    "purge-idempotency-keys-hourly": {
        "task": "ordering.tasks.expire.purge_idempotency_keys_task",
        "schedule": 60 * 60.0,
    },
}

celery_app.conf.timezone = "UTC"
