"""
Errors raised by the cart and order services.

Every error carries an HTTP ``status_code`` so the routers can translate it
without knowing every subclass.
"""


class OrderingError(Exception):
    """
    Base exception for the ordering service.

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context (cart id, order id, ...)
    """

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


# =====================================================
# NOT FOUND
# =====================================================
class NotFoundError(OrderingError):
    status_code = 404


class CartNotFound(NotFoundError):
    def __init__(self, cart_id: str):
        super().__init__(f"Cart {cart_id} not found", details={"cart_id": cart_id})
        self.cart_id = cart_id


class CartItemNotFound(NotFoundError):
    def __init__(self, cart_id: str, item_id: str):
        super().__init__(
            f"Cart item {item_id} not found in cart {cart_id}",
            details={"cart_id": cart_id, "item_id": item_id},
        )
        self.cart_id = cart_id
        self.item_id = item_id


class OrderNotFound(NotFoundError):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found", details={"order_id": order_id})
        self.order_id = order_id


# =====================================================
# VALIDATION
# =====================================================
class CartValidationError(OrderingError):
    """Cart content is not acceptable for the requested operation."""

    status_code = 422


class EmptyCart(CartValidationError):
    def __init__(self, cart_id: str):
        super().__init__(f"Cart {cart_id} is empty", details={"cart_id": cart_id})
        self.cart_id = cart_id


class RestaurantNotSet(CartValidationError):
    def __init__(self, cart_id: str):
        super().__init__(
            f"Cart {cart_id} is not bound to a restaurant",
            details={"cart_id": cart_id},
        )
        self.cart_id = cart_id


class UnknownRestaurant(CartValidationError):
    """The restaurant of a menu item could not be determined for a bound cart."""

    def __init__(self, cart_id: str, menu_item_id: str):
        super().__init__(
            f"Restaurant of menu item {menu_item_id} is unknown, cart {cart_id} is bound to a restaurant",
            details={"cart_id": cart_id, "menu_item_id": menu_item_id},
        )
        self.cart_id = cart_id
        self.menu_item_id = menu_item_id


class InvalidQuantity(CartValidationError):
    def __init__(self, quantity: int):
        super().__init__(
            f"Quantity must be greater than 0, got {quantity}",
            details={"quantity": quantity},
        )
        self.quantity = quantity


class InvalidPrice(CartValidationError):
    def __init__(self, price):
        super().__init__(
            f"Price must not be negative, got {price}",
            details={"price": str(price)},
        )
        self.price = price


# =====================================================
# CONFLICTS
# =====================================================
class RestaurantMismatch(OrderingError):
    """Raised when an item from another restaurant is added to a bound cart."""

    status_code = 409

    def __init__(self, cart_id: str, cart_restaurant_id: str, item_restaurant_id: str):
        super().__init__(
            f"Cart {cart_id} belongs to restaurant {cart_restaurant_id}, "
            f"item belongs to restaurant {item_restaurant_id}",
            details={
                "cart_id": cart_id,
                "cart_restaurant_id": cart_restaurant_id,
                "item_restaurant_id": item_restaurant_id,
            },
        )
        self.cart_id = cart_id
        self.cart_restaurant_id = cart_restaurant_id
        self.item_restaurant_id = item_restaurant_id


class CartNotActive(OrderingError):
    """Raised when a cart that was already turned into an order is touched again."""

    status_code = 409

    def __init__(self, cart_id: str, status: str):
        super().__init__(
            f"Cart {cart_id} is {status} and cannot be modified",
            details={"cart_id": cart_id, "status": status},
        )
        self.cart_id = cart_id
        self.status = status


class CartVersionConflict(OrderingError):
    """The stored cart version moved between our read and our write."""

    status_code = 409

    def __init__(self, cart_id: str, expected_version: int):
        super().__init__(
            f"Cart {cart_id} was modified concurrently (expected version {expected_version})",
            details={"cart_id": cart_id, "expected_version": expected_version},
        )
        self.cart_id = cart_id
        self.expected_version = expected_version


class CartOwnershipError(OrderingError):
    status_code = 403

    def __init__(self, cart_id: str, customer_id: str):
        super().__init__(
            f"Customer {customer_id} does not own cart {cart_id}",
            details={"cart_id": cart_id, "customer_id": customer_id},
        )
        self.cart_id = cart_id
        self.customer_id = customer_id


class IdempotencyConflict(OrderingError):
    """
    Another request already stored this idempotency key.

    Never reaches the client: the order service resolves it to the
    winning order id.
    """

    status_code = 409

    def __init__(self, key: str):
        super().__init__(f"Idempotency key {key} already used", details={"key": key})
        self.key = key


class IdempotencyKeyOwnership(OrderingError):
    """The idempotency key already resolved to an order of another customer."""

    status_code = 403

    def __init__(self, key: str, customer_id: str):
        super().__init__(
            f"Idempotency key {key} belongs to an order of another customer",
            details={"key": key, "customer_id": customer_id},
        )
        self.key = key
        self.customer_id = customer_id


# =====================================================
# INFRASTRUCTURE
# =====================================================
class StoreUnavailable(OrderingError):
    status_code = 503

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Store unavailable during {operation}: {reason}",
            details={"operation": operation},
        )
        self.operation = operation


class PublicationFailure(OrderingError):
    """The event transport did not accept a fact. Logged, never surfaced."""

    status_code = 502

    def __init__(self, topic: str, reason: str):
        super().__init__(
            f"Failed to publish {topic}: {reason}",
            details={"topic": topic},
        )
        self.topic = topic
