# ordering/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, List
from decimal import Decimal
from datetime import datetime

from ordering.domain.enums import CartStatus, OrderStatus


# =====================================================
# CART SNAPSHOTS (repository <-> cache <-> API)
# =====================================================
class CartLine(BaseModel):
    """Single line of a cart."""

    id: str
    menu_item_id: str
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    options: Dict[str, str] | None = None

    model_config = ConfigDict(from_attributes=True)


class Cart(BaseModel):
    """Full cart state, the unit stored in the repository and mirrored in redis."""

    id: str
    customer_id: str | None = None
    restaurant_id: str | None = None
    status: CartStatus = CartStatus.ACTIVE
    version: int = 1
    items: List[CartLine] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    delivery_fee: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# ORDER SNAPSHOTS
# =====================================================
class OrderLine(BaseModel):
    id: str
    menu_item_id: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    modifiers: Dict[str, str] | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderStatusEntry(BaseModel):
    status: OrderStatus
    notes: str | None = None
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Order(BaseModel):
    id: str
    cart_id: str | None = None
    customer_id: str
    restaurant_id: str
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    delivery_address: str
    special_instructions: str | None = None
    idempotency_key: str | None = None
    created_at: datetime
    delivered_at: datetime | None = None
    items: List[OrderLine]
    status_history: List[OrderStatusEntry]

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# API INPUT
# =====================================================
class CreateCartIn(BaseModel):
    """Schema for creating a cart. Both fields are optional (guest carts)."""

    customer_id: str | None = None
    restaurant_id: str | None = None


class CreateCartOut(BaseModel):
    cart_id: str


class AddItemIn(BaseModel):
    """Schema for adding a menu item to a cart."""

    menu_item_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, description="Unit price (>= 0)")
    quantity: int = Field(..., gt=0, description="Quantity (> 0)")
    options: Dict[str, str] | None = None
    restaurant_id: str | None = Field(
        None, description="Restaurant of the menu item, resolved from the menu service when omitted"
    )
    replace: bool = Field(
        False, description="Drop the current cart content when the item comes from another restaurant"
    )


class UpdateItemIn(BaseModel):
    """Quantity <= 0 removes the line."""

    quantity: int


class PlaceOrderIn(BaseModel):
    cart_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1, max_length=500)
    special_instructions: str | None = Field(None, max_length=1000)
    idempotency_key: str | None = Field(None, min_length=1, max_length=200)


class PlaceOrderOut(BaseModel):
    order_id: str


class UpdateOrderStatusIn(BaseModel):
    status: OrderStatus
    notes: str | None = Field(None, max_length=1000)


# =====================================================
# PUBLISHED FACTS
# =====================================================
class OrderPlacedItem(BaseModel):
    menu_item_id: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    modifiers: List[str] = Field(default_factory=list)


class OrderPlacedFact(BaseModel):
    order_id: str
    customer_id: str
    restaurant_id: str
    total_amount: Decimal
    placed_at: datetime
    delivery_address: str
    items: List[OrderPlacedItem]


class OrderStatusChangedFact(BaseModel):
    order_id: str
    customer_id: str
    restaurant_id: str
    old_status: OrderStatus
    new_status: OrderStatus
    notes: str | None = None
    changed_at: datetime
