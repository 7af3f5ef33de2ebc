"""
Ruten Shoplist — Product Listing Filter

Narrows raw search hits to listings that really sell the requested card.
Stages run in strict order, each on the survivors of the previous one:

1. Keyword containment — title holds every token of "<card id>+<rarity>"
2. Foreign edition — simplified Chinese / Korean / English prints, garbled titles
3. Fan-made — DIY and unofficial reproductions
4. Unopened pack — sealed packs and boxes rather than singles
5. Rarity disambiguation — title names one of the card's *other* rarities

Search results arrive cheapest first, so truncating keeps the cheapest matches.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from rutenshop.config import settings

if TYPE_CHECKING:
    from rutenshop.pipeline.ruten import RutenListing

logger = structlog.get_logger(__name__)


def _contains_any(title: str, markers: Sequence[str]) -> bool:
    lowered = title.lower()
    return any(marker.lower() in lowered for marker in markers)


def contains_all_keywords(title: str, product_name: str) -> bool:
    """True if the title contains every token of the product name (case-insensitive)."""
    lowered = title.lower()
    tokens = [t for t in re.split(r"[+\s]+", product_name.lower()) if t]
    return all(token in lowered for token in tokens)


def has_foreign_edition_marker(title: str) -> bool:
    return _contains_any(title, settings.FOREIGN_EDITION_MARKERS)


def is_fan_made(title: str) -> bool:
    return _contains_any(title, settings.FAN_MADE_MARKERS)


def is_unopened_pack(title: str) -> bool:
    return _contains_any(title, settings.UNOPENED_PACK_MARKERS)


def indicates_rarity(title: str, rarity: str) -> bool:
    """
    True if the rarity code appears in the title as a standalone token.

    A code glued to other ASCII letters does not count, so "PSER" does not
    indicate "SER" and "UR" does not indicate "R".
    """
    if not rarity:
        return False
    pattern = rf"(?<![A-Za-z]){re.escape(rarity)}(?![A-Za-z])"
    return re.search(pattern, title, flags=re.IGNORECASE) is not None


def filter_listings(
    listings: Sequence[RutenListing],
    product_name: str,
    rarities: Sequence[str],
) -> list[RutenListing]:
    """
    Keep the listings that match the requested card print.

    Args:
        listings: Raw detail records, cheapest first.
        product_name: "<card id>+<rarity>" as requested.
        rarities: Every rarity the card was printed in.

    Returns:
        At most LISTING_FILTER_MAX_RESULTS matching listings, input order kept.
    """
    counts = {"initial": len(listings)}

    survivors = [x for x in listings if contains_all_keywords(x.name, product_name)]
    counts["keywords"] = len(survivors)

    survivors = [x for x in survivors if not has_foreign_edition_marker(x.name)]
    counts["foreign_edition"] = len(survivors)

    survivors = [x for x in survivors if not is_fan_made(x.name)]
    counts["fan_made"] = len(survivors)

    survivors = [x for x in survivors if not is_unopened_pack(x.name)]
    counts["unopened_pack"] = len(survivors)

    parts = product_name.split("+")
    requested_rarity = parts[1] if len(parts) > 1 else ""
    if requested_rarity and len(rarities) > 1:
        for other in rarities:
            if other.lower() == requested_rarity.lower():
                continue
            survivors = [x for x in survivors if not indicates_rarity(x.name, other)]
    counts["rarity"] = len(survivors)

    result = list(survivors[: settings.LISTING_FILTER_MAX_RESULTS])

    logger.debug(
        "listing_filter_applied",
        product=product_name,
        counts=counts,
        returned=len(result),
    )
    return result
