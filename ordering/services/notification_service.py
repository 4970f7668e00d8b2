# ordering/services/notification_service.py
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


def notify_order_placed(fact: dict) -> None:
    """
    In a real system this would send an email/SMS/push to the customer.
    For now it only logs.
    """
    logger.info(
        f"[NOTIFICATION] Customer {fact['customer_id']}: order {fact['order_id']} "
        f"placed at restaurant {fact['restaurant_id']}, total {fact['total_amount']}"
    )


def notify_order_status_changed(fact: dict) -> None:
    logger.info(
        f"[NOTIFICATION] Customer {fact['customer_id']}: order {fact['order_id']} "
        f"is now {fact['new_status']} (was {fact['old_status']})"
    )
