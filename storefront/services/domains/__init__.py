"""Domain services built on the repositories."""
from .profiles import ProfileService

__all__ = ["ProfileService"]
