"""
Unit Tests: OutboxDispatcher
"""

from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from ordering.domain.errors import PublicationFailure
from ordering.repos.outbox_repo import OutboxRepo
from ordering.services.outbox import OutboxDispatcher


def stage(db, *order_ids):
    repo = OutboxRepo(db)
    events = [repo.add_event("order.placed", order_id, {"order_id": order_id}) for order_id in order_ids]
    db.commit()
    return events


class TestRelay:

    def test_relay_publishes_pending_in_order(self, db, publisher):
        stage(db, "order-1", "order-2")

        published = OutboxDispatcher(db, publisher).relay_pending(limit=10)

        assert published == 2
        assert [c.args[1]["order_id"] for c in publisher.publish.call_args_list] == ["order-1", "order-2"]
        assert OutboxRepo(db).get_pending(10) == []

    def test_relay_respects_batch_size(self, db, publisher):
        stage(db, "order-1", "order-2", "order-3")

        assert OutboxDispatcher(db, publisher).relay_pending(limit=2) == 2
        assert len(OutboxRepo(db).get_pending(10)) == 1

    def test_failed_publication_stays_pending(self, db):
        (event,) = stage(db, "order-1")
        publisher = MagicMock()
        publisher.publish.side_effect = PublicationFailure("order.placed", "broker down")
        dispatcher = OutboxDispatcher(db, publisher)

        assert dispatcher.dispatch(event) is False
        assert dispatcher.relay_pending(limit=10) == 0

        pending = OutboxRepo(db).get_pending(10)
        assert len(pending) == 1
        assert pending[0].attempts == 2

    def test_relay_recovers_after_outage(self, db):
        stage(db, "order-1")
        publisher = MagicMock()
        publisher.publish.side_effect = [PublicationFailure("order.placed", "broker down"), None]
        dispatcher = OutboxDispatcher(db, publisher)

        assert dispatcher.relay_pending(limit=10) == 0
        assert dispatcher.relay_pending(limit=10) == 1
        assert OutboxRepo(db).get_pending(10) == []

    def test_bookkeeping_failure_leaves_row_pending(self, db, publisher, monkeypatch):
        stage(db, "order-1")
        dispatcher = OutboxDispatcher(db, publisher)

        def broken(event):
            raise OperationalError("UPDATE outbox_events", {}, Exception("connection lost"))

        monkeypatch.setattr(dispatcher.repo, "mark_published", broken)

        assert dispatcher.relay_pending(limit=10) == 0
        publisher.publish.assert_called_once()
        assert len(OutboxRepo(db).get_pending(10)) == 1
