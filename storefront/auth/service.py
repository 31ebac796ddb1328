"""Auth Service - thin delegation to the Supabase auth client.

Credential handling, tokens and OAuth flows live in Supabase. Every method
returns ``{"success": bool, ...}`` and logs failures instead of raising.
"""
import asyncio
from typing import Any, Optional

from supabase._async.client import AsyncClient

from storefront.errors import (
    ERROR_SIGN_IN_FAILED,
    ERROR_SIGN_OUT_FAILED,
    ERROR_SIGN_UP_FAILED,
)
from storefront.logging import get_logger, sanitize_string_for_logging
from storefront.services.domains import ProfileService

logger = get_logger(__name__)

# After sign-up the session can take a moment to appear
SIGNUP_SESSION_POLL_ATTEMPTS = 5
SIGNUP_SESSION_POLL_INTERVAL = 0.3  # seconds


def _error_message(e: Exception, fallback: str) -> str:
    return getattr(e, "message", None) or str(e) or fallback


class AuthService:
    """Sign-in / sign-up / sign-out for the storefront."""

    def __init__(
        self,
        client: AsyncClient,
        profiles: ProfileService,
        poll_interval: float = SIGNUP_SESSION_POLL_INTERVAL,
    ):
        self.client = client
        self.profiles = profiles
        self.poll_interval = poll_interval

    async def sign_in(self, email: str, password: str) -> dict[str, Any]:
        """Password sign-in."""
        try:
            response = await self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            logger.warning("Sign in failed for %s: %s", sanitize_string_for_logging(email), type(e).__name__)
            return {"success": False, "error": _error_message(e, ERROR_SIGN_IN_FAILED)}
        return {"success": True, "user_id": str(response.user.id) if response.user else None}

    async def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> dict[str, Any]:
        """
        Create the account, wait for its session, then insert the customer profile.

        If no session shows up (e.g. email confirmation required) the sign-up
        still succeeds; the profile is created on a later sign-in.
        """
        try:
            await self.client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": {"full_name": full_name}},
                }
            )
        except Exception as e:
            logger.warning("Sign up failed for %s: %s", sanitize_string_for_logging(email), type(e).__name__)
            return {"success": False, "error": _error_message(e, ERROR_SIGN_UP_FAILED)}

        user_id = await self._wait_for_session_user()
        if user_id is None:
            logger.warning("No active session after sign up for %s", sanitize_string_for_logging(email))
            return {"success": True, "user_id": None}

        result = await self.profiles.create(user_id, email, full_name)
        if not result["success"]:
            # Account exists; a missing profile row is not a sign-up failure
            logger.error("Profile insert after sign up failed")
        return {"success": True, "user_id": user_id}

    async def _wait_for_session_user(self) -> Optional[str]:
        for attempt in range(SIGNUP_SESSION_POLL_ATTEMPTS):
            try:
                session = await self.client.auth.get_session()
            except Exception as e:
                logger.warning("Session poll failed: %s", type(e).__name__)
                session = None
            if session is not None and session.user is not None:
                return str(session.user.id)
            if attempt < SIGNUP_SESSION_POLL_ATTEMPTS - 1:
                await asyncio.sleep(self.poll_interval)
        return None

    async def sign_in_with_provider(self, provider: str, redirect_to: Optional[str] = None) -> dict[str, Any]:
        """Start an OAuth sign-in; returns the provider URL to open."""
        options = {"redirect_to": redirect_to} if redirect_to else {}
        try:
            response = await self.client.auth.sign_in_with_oauth({"provider": provider, "options": options})
        except Exception as e:
            logger.warning("OAuth sign in with %s failed: %s", provider, type(e).__name__)
            return {"success": False, "error": _error_message(e, ERROR_SIGN_IN_FAILED)}
        return {"success": True, "url": getattr(response, "url", None)}

    async def sign_out(self) -> dict[str, Any]:
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            logger.error("Error signing out: %s", type(e).__name__, exc_info=True)
            return {"success": False, "error": _error_message(e, ERROR_SIGN_OUT_FAILED)}
        return {"success": True}

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> dict[str, Any]:
        """Send the password reset email."""
        options = {"redirect_to": redirect_to} if redirect_to else {}
        try:
            await self.client.auth.reset_password_for_email(email, options)
        except Exception as e:
            logger.warning("Password reset failed for %s: %s", sanitize_string_for_logging(email), type(e).__name__)
            return {"success": False, "error": _error_message(e, "Password reset failed")}
        return {"success": True}
