"""
Storefront container.

Owns every client and service for one browsing session. Build it once at
application start and pass it (or its members) to whatever renders the UI:

    storefront = await Storefront.create(device_id="browser-7f3a")
    await storefront.start()
    storefront.cart.add_item(product)
    ...
    await storefront.close()
"""
from typing import Any, Optional

from supabase._async.client import AsyncClient
from upstash_redis import Redis

from storefront.account import AccountTab
from storefront.auth import AuthService, SessionProvider
from storefront.cart import CartSettings, CartStore, DeviceStore, RemoteItemStore
from storefront.db import create_redis_client, create_supabase_client
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.domains import ProfileService
from storefront.services.repositories import CartItemRepository, ProfileRepository

logger = get_logger(__name__)


class Storefront:
    """Composition root: clients, session provider, auth, profiles and cart."""

    def __init__(
        self,
        client: AsyncClient,
        redis: Redis,
        device_id: str,
        settings: Optional[CartSettings] = None,
    ):
        self.client = client
        self.redis = redis
        self.settings = settings or CartSettings()

        self.profiles = ProfileService(ProfileRepository(client))
        self.auth = AuthService(client, self.profiles)
        self.session = SessionProvider(client)

        device_store = DeviceStore(redis, device_id, ttl=self.settings.device_ttl_seconds)
        remote_store = RemoteItemStore(CartItemRepository(client), self.settings)
        self.cart = CartStore(device_store, remote_store)

    @classmethod
    async def create(cls, device_id: str, settings: Optional[CartSettings] = None) -> "Storefront":
        """Build clients from the environment and wire the services."""
        client = await create_supabase_client()
        redis = create_redis_client()
        return cls(client, redis, device_id, settings or CartSettings.from_env())

    async def start(self) -> None:
        """Attach the cart to session events and load the current session."""
        self.session.add_listener(self.cart)
        await self.session.start()
        logger.info(
            "Storefront started (user %s, %d cart lines)",
            sanitize_id_for_logging(self.session.user_id),
            len(self.cart),
        )

    async def close(self) -> None:
        """Detach from auth events and wait for in-flight cart writes."""
        await self.session.stop()
        self.session.remove_listener(self.cart)
        await self.cart.drain()

    async def account_view(self, segment: Optional[str]) -> dict[str, Any]:
        """Data for the account page tab named by a URL segment."""
        tab = AccountTab.parse(segment)
        view: dict[str, Any] = {"tab": tab, "profile": None}
        user_id = self.session.user_id
        if tab.requires_profile and user_id:
            view["profile"] = await self.profiles.get(user_id)
        return view
