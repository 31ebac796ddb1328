"""Database Models - Pydantic models for catalog and account rows."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from storefront.services.money import to_decimal as _to_decimal


class Product(BaseModel):
    """Product row (the subset the cart needs for display and pricing)."""
    model_config = ConfigDict(extra="ignore")  # Ignore unknown fields from DB

    id: str
    name: str
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    stock: int = 0
    image: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def convert_id_to_str(cls, v):
        # products.id is a bigint in the catalog schema
        return str(v) if v is not None else v

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        return _to_decimal(v)


class Profile(BaseModel):
    """Customer profile row (profiles table, keyed by auth user id)."""
    model_config = ConfigDict(extra="ignore")

    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str = "customer"
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    created_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    """
    Every writable profile field, always written together.

    None is the explicit "clear this column" value; there is no partial
    payload where a field is silently left out.
    """
    model_config = ConfigDict(extra="forbid")

    full_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    birth_date: Optional[date] = None

    @field_validator("full_name", "phone", "avatar_url", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("birth_date", mode="before")
    @classmethod
    def blank_date_to_none(cls, v):
        # Form inputs send "" for an untouched date field
        if v == "":
            return None
        return v

    def to_payload(self) -> dict[str, Any]:
        """Row payload for the profiles table."""
        return {
            "full_name": self.full_name,
            "phone": self.phone,
            "avatar_url": self.avatar_url,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
        }
