"""
Ruten Shoplist — Shipping Incentive Resolver

Only convenience-store pickup (7-Eleven, FamilyMart, Hi-Life) is compared
across shops. Ruten reports these under several codes ("SEVEN_COD",
"FAMI_COD", "FAMILY", ...); all are folded onto one canonical carrier name.

When a shop has no known free-shipping threshold it gets a single entry
with an unreachable amount, so downstream planners treat its shipping as
never free.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from rutenshop.config import settings

if TYPE_CHECKING:
    from rutenshop.pipeline import Shop

logger = structlog.get_logger(__name__)


def normalize_carrier(code: str) -> str | None:
    """
    Map a Ruten shipping code onto a canonical convenience-store carrier.

    Returns:
        "SEVEN", "FAMILY" or "HILIFE", or None for any other carrier.

    Examples:
        >>> normalize_carrier("FAMI_COD")
        'FAMILY'
        >>> normalize_carrier("POST") is None
        True
    """
    carrier = code.upper().removesuffix(settings.CASH_ON_DELIVERY_SUFFIX)
    carrier = settings.CARRIER_ALIASES.get(carrier, carrier)
    if carrier in settings.CONVENIENCE_STORE_CARRIERS:
        return carrier
    return None


def extract_ship_prices(shipping_methods: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Convenience-store fees from a listing's shipping methods, order kept."""
    ship_prices: dict[str, Decimal] = {}
    for way, fee in shipping_methods.items():
        carrier = normalize_carrier(way)
        if carrier is not None:
            ship_prices[carrier] = fee
    return ship_prices


def extract_free_ship(conditions: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Free-shipping thresholds for recognised carriers."""
    free_ship: dict[str, Decimal] = {}
    for name, amount in conditions.items():
        carrier = normalize_carrier(name)
        if carrier is not None:
            free_ship[carrier] = amount
    return free_ship


def default_free_ship(shop: Shop) -> dict[str, Decimal]:
    """
    Sentinel fallback: one entry keyed by the shop's first known carrier.

    A shop without any convenience-store fee falls back to the first
    configured carrier.
    """
    carrier = next(iter(shop.ship_prices), settings.CONVENIENCE_STORE_CARRIERS[0])
    logger.debug(
        "shipping_default_free_ship",
        shop_id=shop.id,
        carrier=carrier,
        threshold=str(settings.NO_FREE_SHIP_THRESHOLD),
    )
    return {carrier: settings.NO_FREE_SHIP_THRESHOLD}
