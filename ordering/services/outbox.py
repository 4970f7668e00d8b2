import json

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ordering.data.models.outbox_event import OutboxEventModel
from ordering.domain.errors import PublicationFailure
from ordering.repos.outbox_repo import OutboxRepo
from ordering.services.event_publisher import EventPublisher
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


class OutboxDispatcher:
    """
    Moves committed outbox rows to the event transport.

    Rows are written in the same transaction as the order, so an event is
    never lost; a failed publish stays pending until the relay picks it up.
    Bookkeeping errors are logged and never reach the caller: the order
    behind the event is already durable.
    """

    def __init__(self, db: Session, publisher: EventPublisher):
        self.db = db
        self.repo = OutboxRepo(db)
        self.publisher = publisher

    def dispatch(self, event: OutboxEventModel) -> bool:
        try:
            # attributes are expired after the order commit, loading them hits the store
            event_id, topic, aggregate_id, payload = event.id, event.topic, event.aggregate_id, event.payload
        except SQLAlchemyError as e:
            logger.error(f"Could not load outbox event, left for relay: {e}")
            self.db.rollback()
            return False

        try:
            self.publisher.publish(topic, json.loads(payload))
        except PublicationFailure as e:
            logger.error(
                f"Publication of outbox event {event_id} ({topic} {aggregate_id}) "
                f"failed, left for relay: {e}"
            )
            self._record(self.repo.mark_failed, event, str(e))
            return False

        return self._record(self.repo.mark_published, event)

    def relay_pending(self, limit: int) -> int:
        pending = self.repo.get_pending(limit)
        if pending:
            logger.info(f"Relaying {len(pending)} pending outbox events")

        published = 0
        for event in pending:
            if self.dispatch(event):
                published += 1
        return published

    def _record(self, mark, event: OutboxEventModel, *args) -> bool:
        event_id = event.id
        try:
            mark(event, *args)
        except SQLAlchemyError as e:
            # row stays pending, the relay publishes it again
            logger.error(f"Could not update outbox event {event_id}, left for relay: {e}")
            self.db.rollback()
            return False
        return True
