# ordering/api/deps.py
from functools import lru_cache

from ordering.services.cache_service import CartCache
from ordering.services.event_publisher import EventPublisher
from ordering.services.menu_client import MenuClient, get_menu_client


@lru_cache
def get_cache() -> CartCache:
    # one connection pool per process
    return CartCache()


def get_publisher() -> EventPublisher:
    return EventPublisher()


def get_menu() -> MenuClient | None:
    return get_menu_client()
