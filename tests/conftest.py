"""Pytest configuration and fixtures"""
import asyncio
import os
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple
from unittest.mock import AsyncMock, Mock

import pytest

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test_key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from storefront.cart import CartSettings, CartStore, DeviceStore, RemoteLine, WriteOutcome
from storefront.services.models import Product


class FakeRedis:
    """Dict-backed stand-in for the sync Upstash client."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.ttls[key] = ex
        return "OK"

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


class FakeRemoteItemStore:
    """In-memory remote cart with switchable failures."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, int]] = {}
        self.products: Dict[str, Product] = {}
        self.calls: List[Tuple] = []
        self.fail_list = False
        self.fail_upserts: Set[str] = set()
        self.gate: Optional[asyncio.Event] = None

    def seed(self, user_id: str, quantities: Dict[str, int]) -> None:
        self.rows[user_id] = dict(quantities)

    async def list(self, user_id):
        self.calls.append(("list", user_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_list:
            return None
        return [
            RemoteLine(product_id=pid, quantity=qty, product=self.products.get(pid))
            for pid, qty in self.rows.get(user_id, {}).items()
        ]

    async def upsert(self, user_id, product_id, quantity):
        self.calls.append(("upsert", user_id, product_id, quantity))
        if product_id in self.fail_upserts:
            return WriteOutcome.RETRIABLE_FAILURE
        self.rows.setdefault(user_id, {})[product_id] = quantity
        return WriteOutcome.SUCCESS

    async def delete(self, user_id, product_id):
        self.calls.append(("delete", user_id, product_id))
        self.rows.get(user_id, {}).pop(product_id, None)
        return WriteOutcome.SUCCESS

    async def delete_all(self, user_id):
        self.calls.append(("delete_all", user_id))
        self.rows.pop(user_id, None)
        return WriteOutcome.SUCCESS

    async def upsert_many(self, user_id, items):
        return {pid: await self.upsert(user_id, pid, qty) for pid, qty in items}

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def device_store(fake_redis):
    return DeviceStore(fake_redis, "device-1")


@pytest.fixture
def remote_store(product_a, product_b, product_c):
    store = FakeRemoteItemStore()
    for product in (product_a, product_b, product_c):
        store.products[product.id] = product
    return store


@pytest.fixture
def cart_store(device_store, remote_store):
    return CartStore(device_store, remote_store)


@pytest.fixture
def fast_settings():
    """No backoff waits between retries."""
    return CartSettings(write_attempts=3, retry_wait_seconds=0, retry_max_wait_seconds=0)


@pytest.fixture
def product_a():
    return Product(id="A", name="Mechanical Keyboard", price=Decimal("49.90"), stock=4, image="kb.png")


@pytest.fixture
def product_b():
    return Product(id="B", name="USB-C Cable", price=Decimal("9.50"), stock=30, image="cable.png")


@pytest.fixture
def product_c():
    return Product(id="C", name="Mouse Pad", price=Decimal("12.00"), stock=0)


@pytest.fixture
def mock_supabase_client():
    """Mock async Supabase client"""
    client = Mock()

    # Mock table operations
    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.insert.return_value = table_mock
    table_mock.update.return_value = table_mock
    table_mock.delete.return_value = table_mock
    table_mock.upsert.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute = AsyncMock(return_value=Mock(data=[]))

    client.table.return_value = table_mock

    # Mock auth operations
    client.auth.get_session = AsyncMock(return_value=None)
    client.auth.on_auth_state_change = Mock(return_value=Mock())
    client.auth.sign_in_with_password = AsyncMock()
    client.auth.sign_up = AsyncMock()
    client.auth.sign_out = AsyncMock()
    client.auth.sign_in_with_oauth = AsyncMock()
    client.auth.reset_password_for_email = AsyncMock()

    return client


@pytest.fixture
def make_session():
    """Factory for Supabase-like session objects."""

    def _make(user_id: Optional[str]):
        if user_id is None:
            return None
        return Mock(user=Mock(id=user_id))

    return _make
