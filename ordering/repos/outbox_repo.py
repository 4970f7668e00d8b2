# ordering/repos/outbox_repo.py
import json
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from ordering.data.models.outbox_event import OutboxEventModel


class OutboxRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_event(self, topic: str, aggregate_id: str, payload: dict) -> OutboxEventModel:
        """Stages the event in the caller's transaction."""
        event = OutboxEventModel(
            topic=topic,
            aggregate_id=aggregate_id,
            payload=json.dumps(payload),
            attempts=0,
        )
        self.db.add(event)
        return event

    def get_event(self, event_id: int) -> OutboxEventModel | None:
        return self.db.get(OutboxEventModel, event_id)

    def get_pending(self, limit: int) -> list[OutboxEventModel]:
        stmt = (
            select(OutboxEventModel)
            .where(OutboxEventModel.published_at.is_(None))
            .order_by(OutboxEventModel.id)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def mark_published(self, event: OutboxEventModel) -> None:
        event.attempts += 1
        event.published_at = datetime.now(timezone.utc)
        event.last_error = None
        self.db.commit()

    def mark_failed(self, event: OutboxEventModel, error: str) -> None:
        event.attempts += 1
        event.last_error = error[:2000]
        self.db.commit()
