# ordering/services/menu_client.py
import requests

from ordering.utils.retry import http_retry
from ordering.utils.settings import MENU_SERVICE_URL
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


class MenuClient:
    """Read-only access to the menu service: restaurant, name and price of a menu item."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or MENU_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def fetch_menu_item(self, menu_item_id: str) -> dict:
        url = f"{self.base_url}/menu-items/{menu_item_id}"
        logger.info(f"MenuClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()


def get_menu_client() -> MenuClient | None:
    # menu lookups are optional, callers may send restaurant_id themselves
    return MenuClient() if MENU_SERVICE_URL else None
