"""Ruten Shoplist — Shopping list domain types"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rutenshop.config import settings


class ProductRequest(BaseModel):
    """One shopping list entry: "<card id>+<rarity>" and how many to buy."""

    product_name: str = Field(..., description="Card base id and rarity, e.g. '12345+UR'")
    count: int = Field(default=1, description="Requested quantity")

    @field_validator("count")
    @classmethod
    def clamp_count(cls, v: int) -> int:
        """Purchase limit policy: never ask for more than MAX_PURCHASE_COUNT."""
        return min(v, settings.MAX_PURCHASE_COUNT)

    @property
    def card_id(self) -> str:
        return self.product_name.split("+")[0]

    @property
    def rarity(self) -> str:
        parts = self.product_name.split("+")
        return parts[1] if len(parts) > 1 else ""


class ProductRequestExtended(ProductRequest):
    """A shopping list entry resolved against the card store. Immutable per run."""

    model_config = ConfigDict(frozen=True)

    card_name: str = ""
    card_number: str = ""
    rarities: tuple[str, ...] = ()


class ProdDetail(BaseModel):
    """A single shop's listing for one product."""

    id: str
    price: Decimal
    quantity_available: int = 0
    shop_id: str
    shipping_methods: dict[str, Decimal] = Field(default_factory=dict)


class ShopProduct(BaseModel):
    """The offer a shop makes for one shopping list entry."""

    id: str
    price: Decimal
    quantity_available: int = 0


class Shop(BaseModel):
    """Aggregation unit: everything one seller can supply from the list."""

    id: str
    products: dict[str, ShopProduct] = Field(default_factory=dict)
    ship_prices: dict[str, Decimal] = Field(default_factory=dict)
    free_ship: dict[str, Decimal] = Field(default_factory=dict)


class AggregationStage(str, Enum):
    """Stage of a shop list run an error originated from."""
    RESOLVE = "resolve"
    DISCOVER = "discover"
    CROSS_SELL = "cross_sell"
    SHIPPING = "shipping"


class AccumulatedError(NamedTuple):
    """A non-fatal failure recorded during a run."""
    stage: AggregationStage
    subject: str          # product name or shop id
    message: str
    error: Exception | None = None


class ShopListResult(NamedTuple):
    """Best-effort shop list plus every error accumulated producing it."""
    shops: list[Shop]
    errors: list[AccumulatedError]
