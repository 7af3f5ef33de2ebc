"""
Ruten Shoplist — Shop List Aggregator

Turns a shopping list into the set of Ruten shops that can supply it:

A. Resolve: card metadata (name, number, rarities) per item, sequential
B. Discover: search, batch detail fetch, listing filter, merge per shop
C. Cross-sell: ask every shop for the list items it was not found with,
             one shop at a time behind the request pacer
D. Shipping: free-shipping thresholds for all shops, concurrently

Nothing short of a database outage aborts a run. Failures are recorded as
AccumulatedError entries and the best-effort shop list is returned with them.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

import structlog

from rutenshop.data_access import DataAccessService, EntityName
from rutenshop.engine.listing_filter import filter_listings
from rutenshop.engine.shipping import default_free_ship, extract_free_ship, extract_ship_prices
from rutenshop.errors import CardNotFoundError, RemoteFetchError, ResolutionError, RutenShopError
from rutenshop.pipeline import (
    AccumulatedError,
    AggregationStage,
    ProdDetail,
    ProductRequest,
    ProductRequestExtended,
    Shop,
    ShopListResult,
    ShopProduct,
)
from rutenshop.pipeline.ruten import RutenApiType, RutenClient
from rutenshop.utils.pacer import RequestPacer

logger = structlog.get_logger(__name__)

CARD_PROJECTION = ["id", "name", "number", "rarity"]


class ShopListService:
    """
    Aggregates per-shop offers for a shopping list.

    Usage:
        service = ShopListService(
            [{"product_name": "12345+UR", "count": 2}],
            DataAccessService(),
        )
        result = await service.get_shop_list()
        for shop in result.shops: ...
        for error in result.errors: ...
    """

    def __init__(
        self,
        shopping_list: Sequence[ProductRequest | Mapping[str, Any]],
        data_access: DataAccessService,
        client: RutenClient | None = None,
        pacer: RequestPacer | None = None,
    ):
        self.shopping_list = [ProductRequest.model_validate(x) for x in shopping_list]
        self._data_access = data_access
        self._client = client
        self._pacer = pacer or RequestPacer()
        self._shopping_list_extended: list[ProductRequestExtended] = []
        self._shops: list[Shop] = []
        self._errors: list[AccumulatedError] = []

    @property
    def shopping_list_extended(self) -> list[ProductRequestExtended]:
        return list(self._shopping_list_extended)

    async def get_shop_list(self) -> ShopListResult:
        """Run all stages and return the shops plus accumulated errors."""
        self._shops = []
        self._errors = []

        logger.info("shop_list_started", items=len(self.shopping_list))

        self._shopping_list_extended = await self._get_product_request_extended()
        if not self._shopping_list_extended:
            logger.warning("shop_list_nothing_resolved", errors=len(self._errors))
            return ShopListResult(shops=[], errors=list(self._errors))

        if self._client is not None:
            await self._run_stages(self._client)
        else:
            async with RutenClient() as client:
                await self._run_stages(client)

        logger.info(
            "shop_list_complete",
            shops=len(self._shops),
            errors=len(self._errors),
        )
        return ShopListResult(shops=list(self._shops), errors=list(self._errors))

    async def _run_stages(self, client: RutenClient) -> None:
        await self._discover_offers(client)
        await self._find_shop_has_another_product(client)
        await self._attach_free_ship(client)

    def _record_error(
        self,
        stage: AggregationStage,
        subject: str,
        error: Exception | None = None,
        message: str | None = None,
    ) -> None:
        text = message or str(error)
        self._errors.append(AccumulatedError(stage=stage, subject=subject, message=text, error=error))
        logger.warning(
            "shop_list_error_recorded",
            stage=stage.value,
            subject=subject,
            error=text,
        )

    # -----------------------------------------------------------------------
    # Stage A: Resolve
    # -----------------------------------------------------------------------

    async def _get_product_request_extended(self) -> list[ProductRequestExtended]:
        extended: list[ProductRequestExtended] = []
        for prod in self.shopping_list:
            try:
                card = await self._find_card_data(prod)
            except ResolutionError as e:
                self._record_error(AggregationStage.RESOLVE, prod.product_name, e)
                continue

            extended.append(
                ProductRequestExtended(
                    product_name=prod.product_name,
                    count=prod.count,
                    card_name=card["name"],
                    card_number=card["number"] or "",
                    rarities=tuple(card["rarity"] or ()),
                )
            )

        logger.info(
            "shop_list_products_resolved",
            requested=len(self.shopping_list),
            resolved=len(extended),
        )
        return extended

    async def _find_card_data(self, prod: ProductRequest) -> dict[str, Any]:
        """
        First card row with the base id whose rarity list matches the requested rarity.

        Raises:
            CardNotFoundError: If no row matches.
            SchemaNotFoundError: If the cards entity is not registered.
        """
        rows = await self._data_access.find(
            EntityName.CARDS,
            {
                "id": prod.card_id,
                "rarity": re.compile(re.escape(prod.rarity), re.IGNORECASE),
            },
            CARD_PROJECTION,
            {"limit": 1},
        )
        if not rows:
            raise CardNotFoundError(prod.card_id, prod.rarity)
        return rows[0]

    # -----------------------------------------------------------------------
    # Stage B: Discover offers
    # -----------------------------------------------------------------------

    async def _discover_offers(self, client: RutenClient) -> None:
        for prod in self._shopping_list_extended:
            try:
                details = await self._find_product_list(client, prod)
            except RemoteFetchError as e:
                self._record_error(AggregationStage.DISCOVER, prod.product_name, e)
                continue

            for detail in details:
                self._add_or_update_shop(prod, detail)

            logger.info(
                "shop_list_product_discovered",
                product=prod.product_name,
                listings=len(details),
            )

        logger.info("shop_list_offers_discovered", shops=len(self._shops))

    async def _find_product_list(
        self, client: RutenClient, prod: ProductRequestExtended
    ) -> list[ProdDetail]:
        listing_ids = await client.search_products(prod.product_name)
        if not listing_ids:
            return []

        listings = await client.fetch_product_details(listing_ids)
        matched = filter_listings(listings, prod.product_name, prod.rarities)
        return [listing.to_prod_detail() for listing in matched]

    def _shop_index(self, shop_id: str) -> int:
        return next((i for i, shop in enumerate(self._shops) if shop.id == shop_id), -1)

    def _add_or_update_shop(self, prod: ProductRequestExtended, detail: ProdDetail) -> None:
        product = ShopProduct(
            id=detail.id,
            price=detail.price,
            quantity_available=detail.quantity_available,
        )
        idx = self._shop_index(detail.shop_id)
        if idx == -1:
            self._shops.append(
                Shop(
                    id=detail.shop_id,
                    products={prod.product_name: product},
                    ship_prices=extract_ship_prices(detail.shipping_methods),
                )
            )
        else:
            self._put_product(idx, prod.product_name, product)

    def _put_product(self, idx: int, product_name: str, product: ShopProduct) -> None:
        # Replace the shop value; earlier copies handed out stay untouched
        shop = self._shops[idx]
        self._shops[idx] = shop.model_copy(
            update={"products": {**shop.products, product_name: product}}
        )

    # -----------------------------------------------------------------------
    # Stage C: Cross-sell probe
    # -----------------------------------------------------------------------

    async def _find_shop_has_another_product(self, client: RutenClient) -> None:
        wanted = [prod.product_name for prod in self._shopping_list_extended]
        shop_ids = [shop.id for shop in self._shops]

        async def probe(shop_id: str) -> None:
            await self._probe_shop(client, shop_id, wanted)

        results = await self._pacer.run(shop_ids, probe)
        for shop_id, result in zip(shop_ids, results):
            if isinstance(result, RutenShopError):
                self._record_error(AggregationStage.CROSS_SELL, shop_id, result)
            elif isinstance(result, Exception):
                raise result

        logger.info("shop_list_cross_sell_complete", shops=len(shop_ids))

    async def _probe_shop(self, client: RutenClient, shop_id: str, wanted: list[str]) -> None:
        seller_id = await client.fetch_shop_info(shop_id)
        if not seller_id:
            raise RemoteFetchError(
                f"No seller id for shop {shop_id}",
                api_type=RutenApiType.SHOP_INFO.value,
                subject=shop_id,
            )

        idx = self._shop_index(shop_id)
        missing = [name for name in wanted if name not in self._shops[idx].products]
        for product_name in missing:
            try:
                product = await client.find_shop_product(seller_id, product_name)
            except RemoteFetchError as e:
                self._record_error(
                    AggregationStage.CROSS_SELL,
                    shop_id,
                    e,
                    message=f"Error while getting other product info for {shop_id} {product_name}: {e}",
                )
                continue

            if product is not None:
                self._put_product(idx, product_name, product)
                logger.info(
                    "shop_list_cross_sell_added",
                    shop_id=shop_id,
                    product=product_name,
                    listing_id=product.id,
                )

    # -----------------------------------------------------------------------
    # Stage D: Shipping incentives
    # -----------------------------------------------------------------------

    async def _attach_free_ship(self, client: RutenClient) -> None:
        results = await asyncio.gather(
            *(self._get_free_ship(client, shop) for shop in self._shops),
            return_exceptions=True,
        )

        for idx, result in enumerate(results):
            shop = self._shops[idx]
            if isinstance(result, RutenShopError):
                self._record_error(
                    AggregationStage.SHIPPING,
                    shop.id,
                    result,
                    message=f"Error while getting ship info for {shop.id}: {result}",
                )
                free_ship = default_free_ship(shop)
            elif isinstance(result, BaseException):
                raise result
            else:
                free_ship = result or default_free_ship(shop)

            self._shops[idx] = shop.model_copy(update={"free_ship": free_ship})

    async def _get_free_ship(self, client: RutenClient, shop: Shop) -> dict[str, Decimal]:
        conditions = await client.fetch_shop_shipping_info(shop.id)
        return extract_free_ship(conditions)
