from sqlalchemy import Column, Integer, String, Text, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship

from ordering.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(String(36), primary_key=True)
    cart_id = Column(String(36), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    menu_item_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)

    # canonical JSON (sorted keys), "" when no options were selected
    options_json = Column(Text, nullable=False, default="")

    cart = relationship("CartModel", back_populates="items")

    __table_args__ = (
        UniqueConstraint("cart_id", "menu_item_id", "options_json", name="u_cart_item_options"),
    )
