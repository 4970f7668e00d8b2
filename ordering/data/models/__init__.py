#import every model so SQLAlchemy registers it in Base.metadata

from ordering.data.models.cart import CartModel
from ordering.data.models.cart_item import CartItemModel
from ordering.data.models.order import OrderModel, OrderItemModel, OrderStatusHistoryModel
from ordering.data.models.idempotency_key import IdempotencyKeyModel
from ordering.data.models.outbox_event import OutboxEventModel

__all__ = [
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusHistoryModel",
    "IdempotencyKeyModel",
    "OutboxEventModel",
]
