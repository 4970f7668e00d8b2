# ordering/services/cart_service.py
import uuid
from decimal import Decimal
from typing import Callable, Dict

from sqlalchemy.orm import Session

from ordering.data.database import store_guard
from ordering.domain.enums import CartStatus
from ordering.domain.errors import (
    CartNotFound,
    CartItemNotFound,
    CartNotActive,
    InvalidQuantity,
    InvalidPrice,
    RestaurantMismatch,
    UnknownRestaurant,
)
from ordering.domain.schemas import Cart, CartLine
from ordering.repos.cart_repo import CartRepo, options_to_json
from ordering.services.cache_service import CartCache
from ordering.services.menu_client import MenuClient
from ordering.services.pricing import PricingPolicy, to_money
from ordering.utils.retry import cart_write_retry
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use cases of the cart domain.

    Queries (get) read through the redis mirror.
    Commands (create, add, set quantity, remove, clear) always read the cart
    from the database, recompute totals, write the whole cart back with a
    version check and only then refresh the mirror from what was persisted.
    """

    def __init__(
        self,
        db: Session,
        cache: CartCache,
        pricing: PricingPolicy | None = None,
        menu_client: MenuClient | None = None,
    ):
        self.db = db
        self.repo = CartRepo(db)
        self.cache = cache
        self.pricing = pricing or PricingPolicy.from_settings()
        self.menu_client = menu_client

    # =====================================================
    # QUERY
    # =====================================================
    def get_cart(self, cart_id: str) -> Cart:
        cached = self.cache.get_cart(cart_id)
        if cached is not None:
            return cached

        #miss in redis is not "not found", ask the database
        with store_guard(self.db, "get_cart"):
            cart = self.repo.get_cart(cart_id)
        if cart is None:
            raise CartNotFound(cart_id)

        self.cache.set_cart(cart)
        return cart

    def get_cart_by_customer(self, customer_id: str) -> Cart:
        with store_guard(self.db, "get_cart_by_customer"):
            cart = self.repo.get_latest_cart_by_customer(customer_id)
        if cart is None:
            raise CartNotFound(f"customer:{customer_id}")

        self.cache.set_cart(cart)
        return cart

    # =====================================================
    # COMMANDS
    # =====================================================
    def create_cart(self, customer_id: str | None = None, restaurant_id: str | None = None) -> Cart:
        with store_guard(self.db, "create_cart"):
            empty = self.repo.create_cart(customer_id, restaurant_id)
            #totals of an empty cart still follow the pricing policy
            cart = self._persist(self.pricing.price_cart(empty), empty.version)

        logger.info(f"Created cart {cart.id} for customer {customer_id} restaurant {restaurant_id}")
        return cart

    def add_item(
        self,
        cart_id: str,
        menu_item_id: str,
        name: str,
        price: Decimal,
        quantity: int,
        options: Dict[str, str] | None = None,
        restaurant_id: str | None = None,
        replace: bool = False,
    ) -> Cart:
        """
        Adds a menu item, merging with an existing line of the same item and
        the same selected options.

        Restaurant scope:
        - unbound cart binds to the item's restaurant
        - bound cart + item from another restaurant -> RestaurantMismatch,
          unless replace=True, which drops the current lines and rebinds
        - bound cart + item of unknown restaurant -> UnknownRestaurant,
          unless the same menu item is already in the cart
        """
        if quantity <= 0:
            raise InvalidQuantity(quantity)
        price = to_money(price)
        if price < 0:
            raise InvalidPrice(price)

        if restaurant_id is None and self.menu_client is not None:
            logger.info(f"Resolving restaurant of menu item {menu_item_id} from menu service")
            restaurant_id = self.menu_client.fetch_menu_item(menu_item_id).get("restaurant_id")

        options_key = options_to_json(options)

        def apply(cart: Cart) -> Cart:
            lines = list(cart.items)
            bound_to = cart.restaurant_id

            if restaurant_id is None and bound_to is not None:
                # only an item already in the cart is known to belong to its restaurant
                if not any(line.menu_item_id == menu_item_id for line in lines):
                    raise UnknownRestaurant(cart.id, menu_item_id)
            elif restaurant_id is not None and bound_to is not None and bound_to != restaurant_id:
                if not replace:
                    raise RestaurantMismatch(cart.id, bound_to, restaurant_id)
                logger.info(f"Replacing cart {cart.id} content: restaurant {bound_to} -> {restaurant_id}")
                lines = []
            if restaurant_id is not None:
                bound_to = restaurant_id

            existing = next(
                (
                    i for i, line in enumerate(lines)
                    if line.menu_item_id == menu_item_id and options_to_json(line.options) == options_key
                ),
                None,
            )
            if existing is not None:
                line = lines[existing]
                logger.info(
                    f"Menu item {menu_item_id} already in cart {cart.id}, "
                    f"quantity {line.quantity} -> {line.quantity + quantity}"
                )
                lines[existing] = line.model_copy(update={"quantity": line.quantity + quantity})
            else:
                logger.info(f"Adding menu item {menu_item_id} x{quantity} to cart {cart.id}")
                lines.append(
                    CartLine(
                        id=str(uuid.uuid4()),
                        menu_item_id=menu_item_id,
                        name=name,
                        unit_price=price,
                        quantity=quantity,
                        line_total=Decimal("0.00"),
                        options=options or None,
                    )
                )
            return cart.model_copy(update={"items": lines, "restaurant_id": bound_to})

        return self._mutate(cart_id, apply)

    def set_item_quantity(self, cart_id: str, item_id: str, quantity: int) -> Cart:
        if quantity <= 0:
            return self.remove_item(cart_id, item_id)

        def apply(cart: Cart) -> Cart:
            lines = list(cart.items)
            for i, line in enumerate(lines):
                if line.id == item_id:
                    logger.info(f"Cart {cart.id} item {item_id}: quantity {line.quantity} -> {quantity}")
                    lines[i] = line.model_copy(update={"quantity": quantity})
                    return cart.model_copy(update={"items": lines})
            raise CartItemNotFound(cart.id, item_id)

        return self._mutate(cart_id, apply)

    def remove_item(self, cart_id: str, item_id: str) -> Cart:
        def apply(cart: Cart) -> Cart:
            lines = [line for line in cart.items if line.id != item_id]
            if len(lines) == len(cart.items):
                raise CartItemNotFound(cart.id, item_id)
            logger.info(f"Removing item {item_id} from cart {cart.id}")
            return cart.model_copy(update={"items": lines})

        return self._mutate(cart_id, apply)

    def clear(self, cart_id: str) -> Cart:
        """Empties the cart and releases its restaurant binding."""

        def apply(cart: Cart) -> Cart:
            logger.info(f"Clearing cart {cart.id} ({len(cart.items)} lines)")
            return cart.model_copy(update={"items": [], "restaurant_id": None})

        return self._mutate(cart_id, apply)

    # =====================================================
    # READ-MODIFY-WRITE
    # =====================================================
    @cart_write_retry()
    def _mutate(self, cart_id: str, apply: Callable[[Cart], Cart]) -> Cart:
        with store_guard(self.db, "cart mutation"):
            # never decide a write from the cached copy
            current = self.repo.get_cart(cart_id)
            if current is None:
                raise CartNotFound(cart_id)
            if current.status != CartStatus.ACTIVE:
                raise CartNotActive(cart_id, current.status.value)

            changed = self.pricing.price_cart(apply(current))
            return self._persist(changed, current.version)

    def _persist(self, cart: Cart, expected_version: int) -> Cart:
        """Writes the cart, commits, then mirrors the state read back from the database."""
        self.repo.save_cart(cart, expected_version)
        self.repo.commit()

        persisted = self.repo.get_cart(cart.id)
        self.cache.set_cart(persisted)
        logger.info(f"Cart {cart.id} saved, version {persisted.version}, total {persisted.total}")
        return persisted
