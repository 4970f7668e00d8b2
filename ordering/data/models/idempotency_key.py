from sqlalchemy import Column, Integer, String, DateTime

from ordering.data.database import Base


class IdempotencyKeyModel(Base):
    __tablename__ = "order_idempotency_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(200), nullable=False, unique=True)
    order_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
