"""Cart package: models, device/remote storage, and the cart store."""
from .config import CartSettings
from .device import DeviceStore
from .models import CartLine, CartSnapshot, CartState, CartStatus
from .remote import RemoteItemStore, RemoteLine, WriteOutcome, classify_error
from .service import CartStore, merge_lines

__all__ = [
    "CartLine",
    "CartSettings",
    "CartSnapshot",
    "CartState",
    "CartStatus",
    "CartStore",
    "DeviceStore",
    "RemoteItemStore",
    "RemoteLine",
    "WriteOutcome",
    "classify_error",
    "merge_lines",
]
