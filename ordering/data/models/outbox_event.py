from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime

from ordering.data.database import Base


class OutboxEventModel(Base):
    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic = Column(String(100), nullable=False)
    aggregate_id = Column(String(36), nullable=False, index=True)
    payload = Column(Text, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    published_at = Column(DateTime(timezone=True), nullable=True, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
