from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship

from ordering.data.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    cart_id = Column(String(36), nullable=True)
    customer_id = Column(String(64), nullable=False, index=True)
    restaurant_id = Column(String(64), nullable=False, index=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    status = Column(String(50), nullable=False, default="Pending", index=True)
    delivery_address = Column(String(500), nullable=False)
    special_instructions = Column(Text, nullable=True)
    idempotency_key = Column(String(200), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.position",
    )
    status_history = relationship(
        "OrderStatusHistoryModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistoryModel.id",
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    menu_item_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)
    modifiers_json = Column(Text, nullable=True)

    order = relationship("OrderModel", back_populates="items")


class OrderStatusHistoryModel(Base):
    __tablename__ = "order_status_history"

    # autoincrement id keeps entries ordered even when timestamps collide
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    changed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    order = relationship("OrderModel", back_populates="status_history")
