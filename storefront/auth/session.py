"""Session provider: turns Supabase auth state changes into sign-in/sign-out events."""
import asyncio
from typing import Any, List, Optional, Protocol, Set

from supabase._async.client import AsyncClient

from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)


class SessionListener(Protocol):
    """What the session provider drives (the cart store implements it)."""

    async def session_acquired(self, user_id: str) -> None: ...

    def session_lost(self) -> None: ...


def _user_id_of(session: Any) -> Optional[str]:
    user = getattr(session, "user", None) if session is not None else None
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id else None


class SessionProvider:
    """
    Tracks the current auth user and notifies listeners when it changes.

    Only changes of the user id are dispatched; token refreshes and profile
    updates for the same user are ignored. The user id is switched before
    anything is awaited, so a sign-out arriving while listeners are still
    handling a sign-in is dispatched at once; listeners guard their own
    re-entrancy.
    """

    def __init__(self, client: AsyncClient):
        self.client = client
        self._user_id: Optional[str] = None
        self._listeners: List[SessionListener] = []
        self._subscription = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start(self) -> None:
        """Load the current session and subscribe to auth state changes."""
        try:
            session = await self.client.auth.get_session()
        except Exception as e:
            logger.error("Error getting session: %s", type(e).__name__, exc_info=True)
            session = None

        self._subscription = self.client.auth.on_auth_state_change(self._on_auth_state_change)
        await self.apply(_user_id_of(session))

    async def stop(self) -> None:
        """Unsubscribe and wait for queued transitions."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _on_auth_state_change(self, event: str, session: Any) -> None:
        logger.debug("Auth state change: %s", event)
        user_id = _user_id_of(session)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("Auth state change %s dropped: no running event loop", event)
            return
        task = loop.create_task(self.apply(user_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def apply(self, user_id: Optional[str]) -> None:
        """Move to ``user_id`` (None = signed out) and notify listeners."""
        if user_id == self._user_id:
            return
        previous, self._user_id = self._user_id, user_id

        if previous is not None:
            logger.info("Session lost for %s", sanitize_id_for_logging(previous))
            for listener in list(self._listeners):
                listener.session_lost()

        if user_id is not None:
            logger.info("Session acquired for %s", sanitize_id_for_logging(user_id))
            for listener in list(self._listeners):
                await listener.session_acquired(user_id)
