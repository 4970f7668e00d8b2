"""
Unit Tests: periodic Celery tasks

Tasks open their own session through SessionLocal, which is pointed at the
test engine here.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from ordering.celery_worker import celery_app
from ordering.data.models.idempotency_key import IdempotencyKeyModel
from ordering.repos.idempotency_repo import IdempotencyRepo
from ordering.repos.outbox_repo import OutboxRepo
from ordering.tasks import expire, outbox


@pytest.fixture(autouse=True)
def task_session(monkeypatch, session_factory):
    monkeypatch.setattr(expire, "SessionLocal", session_factory)
    monkeypatch.setattr(outbox, "SessionLocal", session_factory)


class TestPurgeIdempotencyKeys:

    def test_only_expired_keys_are_removed(self, db):
        repo = IdempotencyRepo(db)
        repo.add("fresh", "order-1", ttl_seconds=3600)
        old = repo.add("old", "order-2", ttl_seconds=3600)
        old.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()

        assert expire.purge_idempotency_keys_task.run() == 1

        db.expire_all()
        keys = db.execute(select(IdempotencyKeyModel.key)).scalars().all()
        assert keys == ["fresh"]


class TestRelayOutbox:

    def test_relay_publishes_pending_events(self, db, publisher, monkeypatch):
        monkeypatch.setattr(outbox, "EventPublisher", lambda: publisher)
        OutboxRepo(db).add_event("order.placed", "order-1", {"order_id": "order-1"})
        db.commit()

        assert outbox.relay_outbox_task.run() == 1
        publisher.publish.assert_called_once_with("order.placed", {"order_id": "order-1"})

    def test_nothing_pending(self, publisher, monkeypatch):
        monkeypatch.setattr(outbox, "EventPublisher", lambda: publisher)

        assert outbox.relay_outbox_task.run() == 0


class TestSchedule:

    def test_beat_schedule(self):
        tasks = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}

        assert tasks == {
            "ordering.tasks.outbox.relay_outbox_task",
            "ordering.tasks.expire.purge_idempotency_keys_task",
        }
