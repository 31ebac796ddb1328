"""
Database Module - Supabase and Redis Clients

Provides factories for:
- Async Supabase client (auth, profiles, remote cart rows)
- Sync Upstash Redis client (device-scoped cart blob)

Clients are created by the Storefront container and owned by it; nothing
here caches a process-wide instance.
"""

import os

from supabase._async.client import AsyncClient
from supabase._async.client import create_client as acreate_client
from upstash_redis import Redis


# Supabase project. The anon key is used: row-level security scopes every
# cart_items / profiles query to the signed-in user.
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")

# Upstash Redis - standard env var names per docs
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")


async def create_supabase_client(
    url: str | None = None,
    key: str | None = None,
) -> AsyncClient:
    """
    Create async Supabase client.

    Falls back to SUPABASE_URL / SUPABASE_ANON_KEY when arguments are omitted.
    """
    url = url or SUPABASE_URL
    key = key or SUPABASE_ANON_KEY
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
    return await acreate_client(url, key)


def create_redis_client(url: str | None = None, token: str | None = None) -> Redis:
    """
    Create sync Upstash Redis client.

    The device store is synchronous by contract, so the sync client is used.
    """
    url = url or UPSTASH_REDIS_REST_URL
    token = token or UPSTASH_REDIS_REST_TOKEN
    if not url or not token:
        raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
    return Redis(url=url, token=token)


# Supabase tables
class Tables:
    """Table names used by the repositories."""

    CART_ITEMS = "cart_items"  # (user_id, product_id) unique
    PROFILES = "profiles"
    PRODUCTS = "products"


# Redis key prefixes for organization
class RedisKeys:
    """Redis key prefixes for different data types."""

    DEVICE_CART = "cart:device:"  # cart:device:{device_id}

    @staticmethod
    def device_cart_key(device_id: str) -> str:
        return f"{RedisKeys.DEVICE_CART}{device_id}"


# TTL constants (in seconds)
class TTL:
    """Time-to-live constants for Redis keys."""

    DEVICE_CART = 2592000  # 30 days
