"""
Repository Pattern for Database Operations

- CartItemRepository: per-user remote cart rows
- ProfileRepository: customer profiles
"""
from .cart_item_repo import CartItemRepository
from .profile_repo import ProfileRepository

__all__ = [
    "CartItemRepository",
    "ProfileRepository",
]
