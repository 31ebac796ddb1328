"""Device-scoped cart storage in Redis.

Synchronous by contract and never raises: Redis errors are logged and
treated as an empty cart (reads) or a dropped write (writes).
"""
import json
from decimal import InvalidOperation
from typing import List

from upstash_redis import Redis

from storefront.db import RedisKeys, TTL
from storefront.logging import get_logger, sanitize_id_for_logging
from .models import CartLine, CartState

logger = get_logger(__name__)


class DeviceStore:
    """Cart blob for one browser/device, used while no session exists."""

    def __init__(self, redis: Redis, device_id: str, ttl: int = TTL.DEVICE_CART):
        if not device_id:
            raise ValueError("device_id must be a non-empty string")
        self.redis = redis
        self.device_id = device_id
        self.ttl = ttl

    @property
    def key(self) -> str:
        return RedisKeys.device_cart_key(self.device_id)

    def get(self) -> List[CartLine]:
        """Read the stored cart; malformed data is discarded and read as empty."""
        try:
            data = self.redis.get(self.key)
        except Exception as e:
            logger.warning(
                "Device cart read failed for %s: %s",
                sanitize_id_for_logging(self.device_id),
                type(e).__name__,
            )
            return []

        if not data:
            return []

        try:
            return CartState.from_list(json.loads(data)).lines
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, InvalidOperation) as e:
            # Corrupted data - reset it
            logger.warning(
                "Corrupted device cart for %s, resetting: %s",
                sanitize_id_for_logging(self.device_id),
                e,
            )
            self.clear()
            return []

    def set(self, lines: List[CartLine]) -> None:
        """Replace the stored cart; an empty cart removes the key."""
        if not lines:
            self.clear()
            return
        try:
            payload = json.dumps(CartState(lines=list(lines)).to_list())
            self.redis.set(self.key, payload, ex=self.ttl)
        except Exception as e:
            logger.warning(
                "Device cart write dropped for %s: %s",
                sanitize_id_for_logging(self.device_id),
                type(e).__name__,
            )

    def clear(self) -> None:
        """Remove the stored cart."""
        try:
            self.redis.delete(self.key)
        except Exception as e:
            logger.warning(
                "Device cart clear failed for %s: %s",
                sanitize_id_for_logging(self.device_id),
                type(e).__name__,
            )
