"""Auth package: session events and auth delegation."""
from .service import AuthService
from .session import SessionListener, SessionProvider

__all__ = [
    "AuthService",
    "SessionListener",
    "SessionProvider",
]
