# ordering/repos/idempotency_repo.py
from datetime import datetime, timezone, timedelta

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ordering.data.models.idempotency_key import IdempotencyKeyModel
from ordering.domain.errors import IdempotencyConflict


class IdempotencyRepo:
    """
    Durable ledger idempotency key -> order id.
    The unique index on key is the only arbiter between racing placements.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_order_id(self, key: str) -> str | None:
        stmt = select(IdempotencyKeyModel.order_id).where(IdempotencyKeyModel.key == key)
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, key: str, order_id: str, ttl_seconds: int) -> IdempotencyKeyModel:
        """
        Stages the record and flushes it right away so a duplicate key fails
        before the rest of the order is written. Caller owns the transaction.
        """
        now = datetime.now(timezone.utc)
        record = IdempotencyKeyModel(
            key=key,
            order_id=order_id,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        self.db.add(record)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise IdempotencyConflict(key) from e
        return record

    def purge_expired(self, now: datetime | None = None) -> int:
        stmt = delete(IdempotencyKeyModel).where(
            IdempotencyKeyModel.expires_at < (now or datetime.now(timezone.utc))
        )
        deleted = self.db.execute(stmt).rowcount
        self.db.commit()
        return deleted
