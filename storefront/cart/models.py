"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from storefront.services.models import Product
from storefront.services.money import multiply, parse_decimal, to_decimal


class CartStatus(str, Enum):
    """Lifecycle of the cart within one browsing session."""
    ANONYMOUS = "anonymous"  # device store is the backing store
    SYNCING = "syncing"  # merging device cart into the signed-in user's cart
    AUTHENTICATED = "authenticated"  # remote item store is the backing store


@dataclass(frozen=True)
class CartLine:
    """Single product entry in the cart."""
    product_id: str
    quantity: int
    unit_price: Decimal  # snapshotted when the line was added
    display_name: str = ""
    image_ref: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))

    @property
    def line_total(self) -> Decimal:
        """Price for all units of this line."""
        return multiply(self.unit_price, self.quantity)

    def with_quantity(self, quantity: int) -> "CartLine":
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        """Convert to dictionary for device storage."""
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "display_name": self.display_name,
            "image_ref": self.image_ref,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Create from a stored dictionary.

        Raises:
            KeyError, TypeError, ValueError: If the record is not a valid cart line
        """
        product_id = data["product_id"]
        if not isinstance(product_id, str) or not product_id:
            raise ValueError(f"Invalid product_id: {product_id!r}")
        quantity = data["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError(f"Invalid quantity: {quantity!r}")
        image_ref = data.get("image_ref")
        return cls(
            product_id=product_id,
            quantity=quantity,
            unit_price=parse_decimal(data["unit_price"]),
            display_name=str(data.get("display_name") or ""),
            image_ref=str(image_ref) if image_ref else None,
        )

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "CartLine":
        """Snapshot a catalog product into a new line."""
        return cls(
            product_id=product.id,
            quantity=quantity,
            unit_price=product.price,
            display_name=product.name,
            image_ref=product.image,
        )


@dataclass
class CartState:
    """Ordered cart lines, at most one line per product_id."""
    lines: List[CartLine] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total_items(self) -> int:
        """Total number of units in cart."""
        return sum(line.quantity for line in self.lines)

    @property
    def total_price(self) -> Decimal:
        """Sum of quantity x unit price over all lines."""
        return sum((line.line_total for line in self.lines), Decimal("0"))

    def index_of(self, product_id: str) -> Optional[int]:
        for i, line in enumerate(self.lines):
            if line.product_id == product_id:
                return i
        return None

    def find(self, product_id: str) -> Optional[CartLine]:
        i = self.index_of(product_id)
        return self.lines[i] if i is not None else None

    def quantities(self) -> Dict[str, int]:
        """product_id -> quantity mapping."""
        return {line.product_id: line.quantity for line in self.lines}

    def to_list(self) -> List[dict]:
        """Convert to a JSON-ready list for device storage."""
        return [line.to_dict() for line in self.lines]

    @classmethod
    def from_list(cls, data: Any) -> "CartState":
        """
        Create from a stored list.

        Duplicate product ids are folded into one line so the uniqueness
        invariant holds for whatever was stored.
        """
        if not isinstance(data, list):
            raise TypeError(f"Cart blob must be a list, got {type(data).__name__}")
        state = cls()
        for record in data:
            if not isinstance(record, dict):
                raise TypeError(f"Cart line must be an object, got {type(record).__name__}")
            line = CartLine.from_dict(record)
            i = state.index_of(line.product_id)
            if i is None:
                state.lines.append(line)
            else:
                existing = state.lines[i]
                state.lines[i] = existing.with_quantity(existing.quantity + line.quantity)
        return state


@dataclass(frozen=True)
class CartSnapshot:
    """Read-only view of the cart handed to subscribers."""
    lines: Tuple[CartLine, ...]
    status: CartStatus
    user_id: Optional[str]
    total_items: int
    total_price: Decimal
    is_open: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> dict:
        """Summary dict for rendering layers."""
        return {
            "status": self.status.value,
            "is_empty": self.is_empty,
            "is_open": self.is_open,
            "total_items": self.total_items,
            "total_price": str(self.total_price),
            "items": [line.to_dict() for line in self.lines],
        }
