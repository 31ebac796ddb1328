"""Cart persistence configuration."""
import os
from dataclasses import dataclass

from storefront.db import TTL


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class CartSettings:
    """Tunables for remote writes and the device record."""
    write_attempts: int = 3  # total attempts per remote call, retriable failures only
    retry_wait_seconds: float = 0.5  # exponential backoff base
    retry_max_wait_seconds: float = 4.0
    device_ttl_seconds: int = TTL.DEVICE_CART

    def __post_init__(self):
        if self.write_attempts < 1:
            raise ValueError("write_attempts must be at least 1")
        if self.retry_wait_seconds < 0 or self.retry_max_wait_seconds < 0:
            raise ValueError("retry waits must be non-negative")

    @classmethod
    def from_env(cls) -> "CartSettings":
        return cls(
            write_attempts=_env_int("CART_WRITE_ATTEMPTS", 3),
            retry_wait_seconds=_env_float("CART_RETRY_WAIT_SECONDS", 0.5),
            retry_max_wait_seconds=_env_float("CART_RETRY_MAX_WAIT_SECONDS", 4.0),
            device_ttl_seconds=_env_int("CART_DEVICE_TTL_SECONDS", TTL.DEVICE_CART),
        )
