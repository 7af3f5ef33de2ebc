"""Shared test helpers: Ruten endpoint URLs and listing builder."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from rutenshop.pipeline.ruten import RutenListing

PROD_LIST_URL = "https://rtapi.ruten.com.tw/api/search/v3/index.php/core/prod"
PROD_DETAIL_URL = "https://rapi.ruten.com.tw/api/items/v2/list"


def shop_info_url(shop_id: str) -> str:
    return f"https://rapi.ruten.com.tw/api/users/v1/index.php/{shop_id}/storeinfo"


def ship_info_url(shop_id: str) -> str:
    return f"https://rapi.ruten.com.tw/api/shippingfee/v1/seller/{shop_id}/event/discount"


def shop_prod_list_url(seller_id: str) -> str:
    return f"https://rtapi.ruten.com.tw/api/search/v3/index.php/core/seller/{seller_id}/prod"


def make_listing(
    name: str,
    id: str = "L1",
    price: int | str = 100,
    num: int = 1,
    user: str = "shopA",
    deliver_way: dict[str, Any] | None = None,
) -> RutenListing:
    """Build a detail record the way the API returns it."""
    return RutenListing(
        id=id,
        name=name,
        goods_price=Decimal(str(price)),
        num=num,
        user=user,
        deliver_way=deliver_way if deliver_way is not None else {"SEVEN_COD": 60, "FAMI_COD": 60},
    )
