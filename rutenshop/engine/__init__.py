from rutenshop.engine.listing_filter import filter_listings
from rutenshop.engine.shipping import (
    default_free_ship,
    extract_free_ship,
    extract_ship_prices,
    normalize_carrier,
)

__all__ = [
    "default_free_ship",
    "extract_free_ship",
    "extract_ship_prices",
    "filter_listings",
    "normalize_carrier",
]
