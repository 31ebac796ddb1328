"""Profile Domain Service.

Reads and writes the customer profile that sits next to the auth user.
All failures are logged and reported through result dicts.
"""

from typing import Any, Optional

from storefront.errors import (
    ERROR_NOT_AUTHENTICATED,
    ERROR_PROFILE_NOT_FOUND,
    ERROR_PROFILE_UPDATE_FAILED,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.models import Profile, ProfileUpdate
from storefront.services.repositories import ProfileRepository

logger = get_logger(__name__)


class ProfileService:
    """Profile domain service."""

    def __init__(self, repo: ProfileRepository) -> None:
        self.repo = repo

    async def get(self, user_id: str) -> Optional[Profile]:
        """Get profile by auth user id, None if missing or unreadable."""
        try:
            return await self.repo.get_by_id(user_id)
        except Exception as e:
            logger.error(
                "Failed to load profile %s: %s",
                sanitize_id_for_logging(user_id),
                type(e).__name__,
                exc_info=True,
            )
            return None

    async def create(self, user_id: str, email: str, full_name: str | None) -> dict[str, Any]:
        """Insert the profile row for a freshly signed-up customer.

        Args:
            user_id: Auth user id
            email: Sign-up email
            full_name: Name entered on the sign-up form

        Returns:
            Success/failure result
        """
        data = {
            "id": user_id,
            "full_name": full_name,
            "email": email,
            "avatar_url": None,
            "role": "customer",
            "phone": None,
            "birth_date": None,
        }
        try:
            profile = await self.repo.create(data)
        except Exception as e:
            logger.error("Failed to insert profile: %s", type(e).__name__, exc_info=True)
            return {"success": False, "error": str(e)}
        logger.info("Profile created for %s", sanitize_id_for_logging(user_id))
        return {"success": True, "profile": profile}

    async def update(self, user_id: str | None, update: ProfileUpdate) -> dict[str, Any]:
        """Write every field of ``update`` to the user's profile.

        Args:
            user_id: Auth user id (None when signed out)
            update: Complete set of writable fields

        Returns:
            Success/failure result with the stored profile on success
        """
        if not user_id:
            return {"success": False, "error": ERROR_NOT_AUTHENTICATED}

        try:
            profile = await self.repo.update(user_id, update.to_payload())
        except Exception as e:
            logger.error("Failed to update profile: %s", type(e).__name__, exc_info=True)
            return {"success": False, "error": ERROR_PROFILE_UPDATE_FAILED}

        if profile is None:
            return {"success": False, "error": ERROR_PROFILE_NOT_FOUND}
        return {"success": True, "profile": profile}
