#ordering/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from ordering.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True)
    customer_id = Column(String(64), nullable=True, index=True)
    restaurant_id = Column(String(64), nullable=True)

    status = Column(String(20), nullable=False, default="ACTIVE")
    version = Column(Integer, nullable=False, default=1)

    # derived from the lines, rewritten together with them on every save
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.position",
    )
