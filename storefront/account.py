"""Account page tabs."""
from enum import Enum
from typing import Optional


class AccountTab(str, Enum):
    """Closed set of account views; the value is the URL segment."""
    PROFILE = "profile"
    ORDERS = "orders"
    WISHLIST = "wishlist"
    ADDRESSES = "addresses"
    PAYMENT = "payment"
    SECURITY = "security"
    NOTIFICATIONS = "notifications"

    @classmethod
    def parse(cls, segment: Optional[str]) -> "AccountTab":
        """Tab for a URL segment; unknown or empty segments open the profile."""
        if not segment:
            return cls.PROFILE
        try:
            return cls(segment.strip().lower())
        except ValueError:
            return cls.PROFILE

    @property
    def requires_profile(self) -> bool:
        """Tabs that render the loaded profile row."""
        return self in (AccountTab.PROFILE, AccountTab.SECURITY)
