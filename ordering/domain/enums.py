from enum import Enum


class CartStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ORDERED = "ORDERED"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    PREPARING = "Preparing"
    READY = "Ready"
    PICKED_UP = "PickedUp"
    IN_TRANSIT = "InTransit"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class EventTopic(str, Enum):
    ORDER_PLACED = "order.placed"
    ORDER_STATUS_CHANGED = "order.status_changed"
