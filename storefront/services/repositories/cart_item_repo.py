"""Cart Item Repository - per-user cart rows (user_id, product_id) -> quantity."""
from typing import Any, Dict, List

from storefront.db import Tables
from .base import BaseRepository

# Embedded join: product metadata comes back with each row
_CART_ITEM_COLUMNS = f"product_id,quantity,{Tables.PRODUCTS}(name,price,image)"


class CartItemRepository(BaseRepository):
    """cart_items table operations."""

    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Get all cart rows of a user with their product data."""
        result = (
            await self.client.table(Tables.CART_ITEMS)
            .select(_CART_ITEM_COLUMNS)
            .eq("user_id", user_id)
            .execute()
        )
        return result.data or []

    async def upsert(self, user_id: str, product_id: str, quantity: int) -> None:
        """Insert or overwrite the quantity of one row."""
        await (
            self.client.table(Tables.CART_ITEMS)
            .upsert(
                {"user_id": user_id, "product_id": product_id, "quantity": quantity},
                on_conflict="user_id,product_id",
            )
            .execute()
        )

    async def delete(self, user_id: str, product_id: str) -> None:
        """Delete one row (deleting an absent row is not an error)."""
        await (
            self.client.table(Tables.CART_ITEMS)
            .delete()
            .eq("user_id", user_id)
            .eq("product_id", product_id)
            .execute()
        )

    async def delete_all(self, user_id: str) -> None:
        """Delete every row of a user."""
        await (
            self.client.table(Tables.CART_ITEMS)
            .delete()
            .eq("user_id", user_id)
            .execute()
        )
