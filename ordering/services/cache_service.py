# ordering/services/cache_service.py
import redis
from redis.exceptions import RedisError

from ordering.domain.schemas import Cart
from ordering.utils.retry import redis_retry
from ordering.utils.settings import REDIS_URL, CART_CACHE_TTL_SECONDS, IDEMPOTENCY_CACHE_TTL_SECONDS
from ordering.utils.logging import get_logger

logger = get_logger(__name__)


def cart_key(cart_id: str) -> str:
    return f"cart:{cart_id}"


def idempotency_key(key: str) -> str:
    return f"order:idem:{key}"


def _cached_version(raw: str) -> int:
    try:
        return Cart.model_validate_json(raw).version
    except ValueError:
        # unreadable entry, any write may replace it
        return 0


class CartCache:
    """
    Redis mirror of full cart state plus the idempotency fast path.

    Advisory only: a miss (or an unreachable redis) never means "does not exist",
    callers always fall back to the database.
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        url: str | None = None,
        cart_ttl: int = CART_CACHE_TTL_SECONDS,
        idempotency_ttl: int = IDEMPOTENCY_CACHE_TTL_SECONDS,
    ):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.cart_ttl = cart_ttl
        self.idempotency_ttl = idempotency_ttl

    # =====================================================
    # CART
    # =====================================================
    def get_cart(self, cart_id: str) -> Cart | None:
        try:
            raw = self._get(cart_key(cart_id))
        except RedisError as e:
            logger.warning(f"Cache read failed for cart {cart_id}: {e}")
            return None
        if raw is None:
            return None
        try:
            return Cart.model_validate_json(raw)
        except ValueError as e:
            logger.warning(f"Dropping unreadable cache entry for cart {cart_id}: {e}")
            self.invalidate_cart(cart_id)
            return None

    def set_cart(self, cart: Cart) -> bool:
        """
        Mirrors the cart unless redis already holds a newer version of it.
        Returns False when the write was skipped or failed.
        """
        try:
            written = self._set_if_not_older(cart_key(cart.id), cart.model_dump_json(), cart.version, self.cart_ttl)
            if not written:
                logger.info(f"Cache already holds a newer version of cart {cart.id}, skipping v{cart.version}")
            return written
        except RedisError as e:
            # stale entry is worse than none
            logger.warning(f"Cache write failed for cart {cart.id}: {e}")
            self.invalidate_cart(cart.id)
            return False

    def invalidate_cart(self, cart_id: str) -> None:
        try:
            self._delete(cart_key(cart_id))
        except RedisError as e:
            logger.warning(f"Cache invalidation failed for cart {cart_id}: {e}")

    # =====================================================
    # IDEMPOTENCY FAST PATH
    # =====================================================
    def get_order_for_token(self, key: str) -> str | None:
        try:
            return self._get(idempotency_key(key))
        except RedisError as e:
            logger.warning(f"Cache read failed for idempotency key {key}: {e}")
            return None

    def set_order_for_token(self, key: str, order_id: str) -> None:
        try:
            self._set(idempotency_key(key), order_id, self.idempotency_ttl)
        except RedisError as e:
            logger.warning(f"Cache write failed for idempotency key {key}: {e}")

    def forget_token(self, key: str) -> None:
        try:
            self._delete(idempotency_key(key))
        except RedisError as e:
            logger.warning(f"Cache invalidation failed for idempotency key {key}: {e}")

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except RedisError:
            return False

    # =====================================================
    # RAW REDIS (retried)
    # =====================================================
    @redis_retry()
    def _get(self, key: str) -> str | None:
        return self.redis.get(key)

    @redis_retry()
    def _set(self, key: str, value: str, ttl: int) -> None:
        #SET order:idem:<key> <order_id> EX 86400
        self.redis.set(name=key, value=value, ex=ttl)

    @redis_retry()
    def _set_if_not_older(self, key: str, value: str, version: int, ttl: int) -> bool:
        #WATCH cart:<id>, compare versions, MULTI SET EXEC; redis-py retries on WatchError
        def write(pipe) -> bool:
            current = pipe.get(key)
            if current is not None and _cached_version(current) > version:
                return False
            pipe.multi()
            pipe.set(name=key, value=value, ex=ttl)
            return True

        return self.redis.transaction(write, key, value_from_callable=True)

    @redis_retry()
    def _delete(self, key: str) -> None:
        self.redis.delete(key)
