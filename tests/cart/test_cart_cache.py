"""
Unit Tests: CartCache

The mirror is advisory, every redis failure must degrade to a miss.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from ordering.domain.schemas import Cart, CartLine
from ordering.services.cache_service import CartCache, cart_key


@pytest.fixture
def cart():
    return Cart(
        id="cart-1",
        customer_id="customer-1",
        restaurant_id="napoli",
        version=3,
        items=[
            CartLine(
                id="line-1",
                menu_item_id="margherita",
                name="Pizza Margherita",
                unit_price=Decimal("7.99"),
                quantity=2,
                line_total=Decimal("15.98"),
                options={"size": "L"},
            )
        ],
        subtotal=Decimal("15.98"),
        tax=Decimal("1.28"),
        delivery_fee=Decimal("2.99"),
        total=Decimal("20.25"),
    )


@pytest.fixture
def broken_redis():
    client = MagicMock()
    client.get.side_effect = RedisConnectionError("down")
    client.set.side_effect = RedisConnectionError("down")
    client.transaction.side_effect = RedisConnectionError("down")
    client.delete.side_effect = RedisConnectionError("down")
    client.ping.side_effect = RedisConnectionError("down")
    return client


class TestCartMirror:

    def test_set_then_get_returns_full_state(self, cache, cart):
        cache.set_cart(cart)

        assert cache.get_cart("cart-1") == cart

    def test_entry_has_ttl(self, cache, redis_client, cart):
        cache.set_cart(cart)

        assert 0 < redis_client.ttl(cart_key("cart-1")) <= cache.cart_ttl

    def test_older_version_does_not_overwrite_newer(self, cache, cart):
        newer = cart.model_copy(update={"version": 4, "items": []})
        cache.set_cart(newer)

        assert cache.set_cart(cart) is False
        assert cache.get_cart("cart-1") == newer

    def test_newer_version_replaces_entry(self, cache, cart):
        cache.set_cart(cart)
        newer = cart.model_copy(update={"version": 4, "items": []})

        assert cache.set_cart(newer) is True
        assert cache.get_cart("cart-1").version == 4

    def test_unreadable_entry_is_replaced_on_write(self, cache, redis_client, cart):
        redis_client.set(cart_key("cart-1"), "{not json")

        assert cache.set_cart(cart) is True
        assert cache.get_cart("cart-1") == cart

    def test_invalidate(self, cache, cart):
        cache.set_cart(cart)
        cache.invalidate_cart("cart-1")

        assert cache.get_cart("cart-1") is None

    def test_unreadable_entry_is_dropped(self, cache, redis_client):
        redis_client.set(cart_key("cart-1"), "{not json")

        assert cache.get_cart("cart-1") is None
        assert redis_client.get(cart_key("cart-1")) is None


class TestIdempotencyFastPath:

    def test_token_roundtrip(self, cache):
        assert cache.get_order_for_token("key-1") is None

        cache.set_order_for_token("key-1", "order-1")

        assert cache.get_order_for_token("key-1") == "order-1"

    def test_forget_token(self, cache):
        cache.set_order_for_token("key-1", "order-1")
        cache.forget_token("key-1")

        assert cache.get_order_for_token("key-1") is None


class TestRedisDown:

    def test_reads_are_misses(self, broken_redis):
        cache = CartCache(client=broken_redis)

        assert cache.get_cart("cart-1") is None
        assert cache.get_order_for_token("key-1") is None
        assert cache.ping() is False

    def test_writes_do_not_raise(self, broken_redis, cart):
        cache = CartCache(client=broken_redis)

        cache.set_cart(cart)
        cache.set_order_for_token("key-1", "order-1")
        cache.invalidate_cart("cart-1")

    def test_cart_service_falls_back_to_database(self, db, pricing, broken_redis):
        from ordering.services.cart_service import CartService

        svc = CartService(db=db, cache=CartCache(client=broken_redis), pricing=pricing)
        cart = svc.create_cart(customer_id="customer-1")
        svc.add_item(cart.id, "margherita", "Pizza", Decimal("7.99"), 1, restaurant_id="napoli")

        assert svc.get_cart(cart.id).items[0].menu_item_id == "margherita"
