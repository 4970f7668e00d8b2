# ordering/services/order_service.py
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ordering.data.database import store_guard
from ordering.data.models.order import OrderModel, OrderItemModel, OrderStatusHistoryModel
from ordering.domain.enums import CartStatus, OrderStatus, EventTopic
from ordering.domain.errors import (
    CartNotFound,
    CartNotActive,
    CartOwnershipError,
    EmptyCart,
    RestaurantNotSet,
    IdempotencyConflict,
    IdempotencyKeyOwnership,
    OrderNotFound,
)
from ordering.domain.schemas import (
    Cart,
    Order,
    OrderLine,
    OrderStatusEntry,
    OrderPlacedFact,
    OrderPlacedItem,
    OrderStatusChangedFact,
)
from ordering.repos.cart_repo import CartRepo, options_to_json, options_from_json
from ordering.repos.idempotency_repo import IdempotencyRepo
from ordering.repos.order_repo import OrderRepo
from ordering.repos.outbox_repo import OutboxRepo
from ordering.services.cache_service import CartCache
from ordering.services.event_publisher import EventPublisher
from ordering.services.outbox import OutboxDispatcher
from ordering.utils.settings import IDEMPOTENCY_KEY_TTL_SECONDS
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Order domain, separate from CartService.

    Turns a cart into an immutable order exactly once per idempotency key and
    hands the order.placed fact to the event transport.
    """

    def __init__(
        self,
        db: Session,
        cache: CartCache,
        publisher: EventPublisher,
        idempotency_ttl: int = IDEMPOTENCY_KEY_TTL_SECONDS,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.ledger = IdempotencyRepo(db)
        self.outbox = OutboxRepo(db)
        self.dispatcher = OutboxDispatcher(db, publisher)
        self.cache = cache
        self.idempotency_ttl = idempotency_ttl

    # =====================================================
    # COMMANDS
    # =====================================================
    def place_order(
        self,
        cart_id: str,
        customer_id: str,
        delivery_address: str,
        idempotency_key: str,
        special_instructions: str | None = None,
    ) -> str:
        """
        Use case: place an order from a cart.

        1. Key already resolved (redis fast path, then ledger) -> return that order, nothing else;
           a key resolving to another customer's order -> IdempotencyKeyOwnership
        2. Validate the cart read from the database
        3. One transaction: ledger record, order + lines + history, outbox event, cart consumed
        4. Duplicate key lost the race -> return the winner's order
        5. Cache key -> order, publish (failure is logged, the relay retries)
        """
        resolved = self._resolve_key(idempotency_key, customer_id)
        if resolved is not None:
            logger.info(f"Idempotency key {idempotency_key} already resolved to order {resolved}")
            return resolved

        with store_guard(self.db, "place_order"):
            cart = self.cart_repo.get_cart(cart_id)
            self._validate_cart(cart, cart_id, customer_id)

            order = self._build_order(cart, customer_id, delivery_address, idempotency_key, special_instructions)

            try:
                self.ledger.add(idempotency_key, order.id, self.idempotency_ttl)
            except IdempotencyConflict:
                return self._resolve_conflict(idempotency_key, customer_id)

            self.repo.add_order(order)
            event = self.outbox.add_event(
                EventTopic.ORDER_PLACED.value,
                order.id,
                self._placed_fact(order).model_dump(mode="json"),
            )

            #cart can produce one order only
            if self.cart_repo.mark_ordered(cart.id, cart.version) == 0:
                self.db.rollback()
                winner = self.ledger.find_order_id(idempotency_key)
                if winner is not None:
                    self._check_key_owner(idempotency_key, winner, customer_id)
                    return winner
                raise CartNotActive(cart.id, "modified or already ordered")

            self.db.commit()

        logger.info(
            f"Order {order.id} placed from cart {cart_id} for customer {customer_id}, "
            f"total {order.total}, key {idempotency_key}"
        )

        self.cache.set_order_for_token(idempotency_key, order.id)
        self.cache.invalidate_cart(cart_id)
        self.dispatcher.dispatch(event)

        return order.id

    def update_order_status(self, order_id: str, new_status: OrderStatus, notes: str | None = None) -> bool:
        """Appends a status entry. Returns False when the order does not exist."""
        new_status = OrderStatus(new_status)

        with store_guard(self.db, "update_order_status"):
            order = self.repo.get_order(order_id)
            if order is None:
                return False

            old_status = order.status
            changed_at = datetime.now(timezone.utc)
            self.repo.append_status(order, new_status.value, notes, changed_at)
            if new_status == OrderStatus.DELIVERED:
                order.delivered_at = changed_at

            event = self.outbox.add_event(
                EventTopic.ORDER_STATUS_CHANGED.value,
                order.id,
                OrderStatusChangedFact(
                    order_id=order.id,
                    customer_id=order.customer_id,
                    restaurant_id=order.restaurant_id,
                    old_status=OrderStatus(old_status),
                    new_status=new_status,
                    notes=notes,
                    changed_at=changed_at,
                ).model_dump(mode="json"),
            )
            self.db.commit()

        logger.info(f"Order {order_id} status {old_status} -> {new_status.value}")
        self.dispatcher.dispatch(event)
        return True

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: str) -> Order:
        with store_guard(self.db, "get_order"):
            order = self.repo.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return self.to_snapshot(order)

    def get_orders_by_customer(self, customer_id: str) -> list[Order]:
        with store_guard(self.db, "get_orders_by_customer"):
            orders = self.repo.get_orders_by_customer(customer_id)
        return [self.to_snapshot(o) for o in orders]

    # =====================================================
    # HELPERS
    # =====================================================
    def _resolve_key(self, key: str, customer_id: str) -> str | None:
        order_id = self.cache.get_order_for_token(key)

        with store_guard(self.db, "idempotency lookup"):
            if order_id is None:
                order_id = self.ledger.find_order_id(key)
                if order_id is None:
                    return None
                self.cache.set_order_for_token(key, order_id)
            self._check_key_owner(key, order_id, customer_id)
        return order_id

    def _resolve_conflict(self, key: str, customer_id: str) -> str:
        # a concurrent request with the same key committed first
        winner = self.ledger.find_order_id(key)
        if winner is None:
            raise IdempotencyConflict(key)
        self._check_key_owner(key, winner, customer_id)
        logger.info(f"Idempotency key {key} won by a concurrent request, returning order {winner}")
        self.cache.set_order_for_token(key, winner)
        return winner

    def _check_key_owner(self, key: str, order_id: str, customer_id: str) -> None:
        owner = self.repo.get_customer_id(order_id)
        if owner is not None and owner != customer_id:
            logger.warning(f"Idempotency key {key} reused by customer {customer_id}, order {order_id} is not theirs")
            raise IdempotencyKeyOwnership(key, customer_id)

    @staticmethod
    def _validate_cart(cart: Cart | None, cart_id: str, customer_id: str) -> None:
        if cart is None:
            raise CartNotFound(cart_id)
        if cart.customer_id is not None and cart.customer_id != customer_id:
            raise CartOwnershipError(cart_id, customer_id)
        if cart.status != CartStatus.ACTIVE:
            raise CartNotActive(cart_id, cart.status.value)
        if not cart.items:
            raise EmptyCart(cart_id)
        if cart.restaurant_id is None:
            raise RestaurantNotSet(cart_id)

    @staticmethod
    def _build_order(
        cart: Cart,
        customer_id: str,
        delivery_address: str,
        idempotency_key: str,
        special_instructions: str | None,
    ) -> OrderModel:
        order_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)

        # values are copied, later menu price changes never reach the order
        return OrderModel(
            id=order_id,
            cart_id=cart.id,
            customer_id=customer_id,
            restaurant_id=cart.restaurant_id,
            subtotal=cart.subtotal,
            tax=cart.tax,
            delivery_fee=cart.delivery_fee,
            total=cart.total,
            status=OrderStatus.PENDING.value,
            delivery_address=delivery_address,
            special_instructions=special_instructions,
            idempotency_key=idempotency_key,
            created_at=now,
            items=[
                OrderItemModel(
                    id=str(uuid.uuid4()),
                    order_id=order_id,
                    position=position,
                    menu_item_id=line.menu_item_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=line.line_total,
                    modifiers_json=options_to_json(line.options) or None,
                )
                for position, line in enumerate(cart.items)
            ],
            status_history=[
                OrderStatusHistoryModel(
                    order_id=order_id,
                    status=OrderStatus.PENDING.value,
                    changed_at=now,
                )
            ],
        )

    @staticmethod
    def _placed_fact(order: OrderModel) -> OrderPlacedFact:
        return OrderPlacedFact(
            order_id=order.id,
            customer_id=order.customer_id,
            restaurant_id=order.restaurant_id,
            total_amount=order.total,
            placed_at=order.created_at,
            delivery_address=order.delivery_address,
            items=[
                OrderPlacedItem(
                    menu_item_id=item.menu_item_id,
                    name=item.name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                    modifiers=[
                        f"{name}: {value}"
                        for name, value in sorted((options_from_json(item.modifiers_json) or {}).items())
                    ],
                )
                for item in order.items
            ],
        )

    @staticmethod
    def to_snapshot(order: OrderModel) -> Order:
        return Order(
            id=order.id,
            cart_id=order.cart_id,
            customer_id=order.customer_id,
            restaurant_id=order.restaurant_id,
            subtotal=order.subtotal,
            tax=order.tax,
            delivery_fee=order.delivery_fee,
            total=order.total,
            status=OrderStatus(order.status),
            delivery_address=order.delivery_address,
            special_instructions=order.special_instructions,
            idempotency_key=order.idempotency_key,
            created_at=order.created_at,
            delivered_at=order.delivered_at,
            items=[
                OrderLine(
                    id=i.id,
                    menu_item_id=i.menu_item_id,
                    name=i.name,
                    quantity=i.quantity,
                    unit_price=i.unit_price,
                    line_total=i.line_total,
                    modifiers=options_from_json(i.modifiers_json),
                )
                for i in order.items
            ],
            status_history=[
                OrderStatusEntry(status=OrderStatus(h.status), notes=h.notes, changed_at=h.changed_at)
                for h in order.status_history
            ],
        )
