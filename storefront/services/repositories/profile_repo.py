"""Profile Repository - customer profile rows."""
from typing import Any, Dict, Optional

from storefront.db import Tables
from storefront.services.models import Profile
from .base import BaseRepository


class ProfileRepository(BaseRepository):
    """profiles table operations."""

    async def get_by_id(self, user_id: str) -> Optional[Profile]:
        result = (
            await self.client.table(Tables.PROFILES)
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        return Profile(**result.data[0]) if result.data else None

    async def create(self, data: Dict[str, Any]) -> Optional[Profile]:
        result = await self.client.table(Tables.PROFILES).insert(data).execute()
        return Profile(**result.data[0]) if result.data else None

    async def update(self, user_id: str, data: Dict[str, Any]) -> Optional[Profile]:
        result = (
            await self.client.table(Tables.PROFILES)
            .update(data)
            .eq("id", user_id)
            .execute()
        )
        return Profile(**result.data[0]) if result.data else None
