# ordering/services/event_publisher.py
from typing import Callable, Dict, List

from ordering.celery_worker import celery_app
from ordering.domain.enums import EventTopic
from ordering.domain.errors import PublicationFailure
from ordering.services import notification_service
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

# in-process consumers, external ones (payment, chat, delivery) subscribe on the broker
CONSUMERS: Dict[str, List[Callable[[dict], None]]] = {
    EventTopic.ORDER_PLACED.value: [notification_service.notify_order_placed],
    EventTopic.ORDER_STATUS_CHANGED.value: [notification_service.notify_order_status_changed],
}


class EventPublisher:
    """
    Hands facts to the Celery transport.

    publish() returns once the broker accepted the message. Delivery to the
    consumers is at-least-once: the task is acked late and retried on failure,
    consumers have to be idempotent on order_id.
    """

    def __init__(self, task=None):
        self.task = task or deliver_event_task

    def publish(self, topic: str, fact: dict) -> None:
        try:
            self.task.apply_async(args=(topic, fact))
        except Exception as e:
            raise PublicationFailure(topic, str(e)) from e
        logger.info(f"Published {topic} for {fact.get('order_id')}")


@celery_app.task(
    name="ordering.services.event_publisher.deliver_event_task",
    acks_late=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 5},
)
def deliver_event_task(topic: str, fact: dict):
    handlers = CONSUMERS.get(topic, [])
    if not handlers:
        logger.warning(f"No consumers registered for {topic}")

    for handler in handlers:
        handler(fact)

    return {"topic": topic, "order_id": fact.get("order_id"), "consumers": len(handlers)}
