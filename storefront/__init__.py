"""Storefront client: cart with device/remote sync over Supabase."""
from .app import Storefront

__all__ = ["Storefront"]

__version__ = "0.1.0"
