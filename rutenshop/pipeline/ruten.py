"""
Ruten Shoplist — Ruten Marketplace API Client

Read-only access to five Ruten endpoints: product search, product detail
batch, per-shop product search, shop shipping discounts and store info.

Each endpoint is a request variant carrying its own parameters. Every
failure (transport, timeout, non-2xx, undecodable or unexpected payload)
surfaces as RemoteFetchError so callers can record it and move on.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, TypeVar, Union

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rutenshop.config import settings
from rutenshop.errors import RemoteFetchError
from rutenshop.pipeline import ProdDetail, ShopProduct

logger = structlog.get_logger(__name__)

SORT_PRICE_ASC = "prc/ac"


# ---------------------------------------------------------------------------
# Request Variants
# ---------------------------------------------------------------------------


class RutenApiType(str, Enum):
    """Ruten endpoints used by the shop list pipeline."""
    PROD_LIST = "prod_list"
    PROD_DETAIL_LIST = "prod_detail_list"
    SHOP_SHIP_INFO = "shop_ship_info"
    SHOP_INFO = "shop_info"
    SHOP_PROD_LIST = "shop_prod_list"


class _RutenRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_type: ClassVar[RutenApiType]

    @property
    def subject(self) -> str:
        """Product or shop the request is about, for error context."""
        raise NotImplementedError

    def url(self) -> str:
        raise NotImplementedError

    def params(self) -> dict[str, Any]:
        return {}


class ProductSearchRequest(_RutenRequest):
    """Marketplace-wide search, cheapest first."""

    api_type: ClassVar[RutenApiType] = RutenApiType.PROD_LIST
    query_string: str

    @property
    def subject(self) -> str:
        return self.query_string

    def url(self) -> str:
        return f"{settings.RUTEN_API_BASE_URL}/search/v3/index.php/core/prod"

    def params(self) -> dict[str, Any]:
        return {
            "q": self.query_string,
            "type": "direct",
            "sort": SORT_PRICE_ASC,
            "offset": 1,
            "limit": settings.RUTEN_SEARCH_PAGE_SIZE,
        }


class ProductDetailRequest(_RutenRequest):
    """Detail batch for comma-joined listing ids."""

    api_type: ClassVar[RutenApiType] = RutenApiType.PROD_DETAIL_LIST
    product_ids: str

    @property
    def subject(self) -> str:
        return self.product_ids

    def url(self) -> str:
        return f"{settings.RUTEN_RAPI_BASE_URL}/items/v2/list"

    def params(self) -> dict[str, Any]:
        return {"gno": self.product_ids, "level": "simple"}


class ShopShipInfoRequest(_RutenRequest):
    """Free-shipping discount conditions of one shop."""

    api_type: ClassVar[RutenApiType] = RutenApiType.SHOP_SHIP_INFO
    shop_id: str

    @property
    def subject(self) -> str:
        return self.shop_id

    def url(self) -> str:
        return f"{settings.RUTEN_RAPI_BASE_URL}/shippingfee/v1/seller/{self.shop_id}/event/discount"


class ShopInfoRequest(_RutenRequest):
    """Store info, used to resolve a shop id to its seller id."""

    api_type: ClassVar[RutenApiType] = RutenApiType.SHOP_INFO
    shop_id: str

    @property
    def subject(self) -> str:
        return self.shop_id

    def url(self) -> str:
        return f"{settings.RUTEN_RAPI_BASE_URL}/users/v1/index.php/{self.shop_id}/storeinfo"


class ShopProductSearchRequest(_RutenRequest):
    """Search restricted to one seller's listings, cheapest first."""

    api_type: ClassVar[RutenApiType] = RutenApiType.SHOP_PROD_LIST
    shop_id: str
    target_product: str
    limit: int = 50

    @property
    def subject(self) -> str:
        return f"{self.shop_id} {self.target_product}"

    def url(self) -> str:
        return f"{settings.RUTEN_API_BASE_URL}/search/v3/index.php/core/seller/{self.shop_id}/prod"

    def params(self) -> dict[str, Any]:
        return {
            "sort": SORT_PRICE_ASC,
            "limit": min(self.limit, settings.RUTEN_SHOP_SEARCH_MAX_LIMIT),
            "q": self.target_product,
        }


RutenApiRequest = Union[
    ProductSearchRequest,
    ProductDetailRequest,
    ShopShipInfoRequest,
    ShopInfoRequest,
    ShopProductSearchRequest,
]


def get_ruten_api_url(request: RutenApiRequest) -> str:
    """Full request URL, query string included."""
    return str(httpx.URL(request.url(), params=request.params()))


# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


def _to_str(v: Any) -> Any:
    return str(v) if isinstance(v, int) else v


class RutenSearchRow(BaseModel):
    """One hit of a search endpoint. Only the listing id is used."""

    Id: str | None = None

    @field_validator("Id", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> Any:
        return _to_str(v)


class RutenSearchResponse(BaseModel):
    """Response of the marketplace and per-shop search endpoints."""

    Rows: list[RutenSearchRow] = Field(default_factory=list)
    TotalRows: int = Field(default=0)


class RutenListing(BaseModel):
    """A listing as returned by the detail batch endpoint."""

    id: str = Field(..., description="Listing id")
    name: str = Field(default="", description="Listing title")
    goods_price: Decimal = Field(default=Decimal("0"), description="Price in TWD")
    num: int = Field(default=0, description="Quantity available")
    user: str = Field(default="", description="Shop id of the seller")
    deliver_way: dict[str, Decimal] = Field(
        default_factory=dict, description="Shipping method code -> fee"
    )

    @field_validator("id", "user", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> Any:
        return _to_str(v)

    @field_validator("deliver_way", mode="before")
    @classmethod
    def parse_fees(cls, v: Any) -> dict[str, Decimal]:
        """Keep only shipping methods with a numeric fee."""
        if not isinstance(v, dict):
            return {}
        fees: dict[str, Decimal] = {}
        for way, fee in v.items():
            try:
                fees[way] = Decimal(str(fee))
            except (InvalidOperation, ValueError):
                continue
        return fees

    def to_prod_detail(self) -> ProdDetail:
        return ProdDetail(
            id=self.id,
            price=self.goods_price,
            quantity_available=self.num,
            shop_id=self.user,
            shipping_methods=self.deliver_way,
        )

    def to_shop_product(self) -> ShopProduct:
        return ShopProduct(id=self.id, price=self.goods_price, quantity_available=self.num)


class RutenProductDetailResponse(BaseModel):
    data: list[RutenListing] = Field(default_factory=list)


class RutenDiscountCondition(BaseModel):
    arrival_amount: Decimal = Field(..., description="Minimum order amount for free shipping")


class RutenShipInfo(BaseModel):
    discount_conditions: dict[str, RutenDiscountCondition] = Field(default_factory=dict)

    @field_validator("discount_conditions", mode="before")
    @classmethod
    def empty_list_as_dict(cls, v: Any) -> Any:
        """The endpoint sends [] instead of {} when a shop has no discounts."""
        return v if v else {}


class RutenShipInfoResponse(BaseModel):
    data: RutenShipInfo = Field(default_factory=RutenShipInfo)


class RutenStoreInfo(BaseModel):
    user_id: str = ""

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> Any:
        return "" if v is None else _to_str(v)


class RutenStoreInfoResponse(BaseModel):
    data: RutenStoreInfo = Field(default_factory=RutenStoreInfo)


ResponseT = TypeVar("ResponseT", bound=BaseModel)


# ---------------------------------------------------------------------------
# API Client
# ---------------------------------------------------------------------------


class RutenClient:
    """
    Async client for the Ruten marketplace API.

    Usage:
        async with RutenClient() as client:
            ids = await client.search_products("12345+UR")
            listings = await client.fetch_product_details(ids)
    """

    def __init__(
        self,
        timeout: float | None = None,
        max_retries: int | None = None,
        base_backoff: float | None = None,
    ):
        self._timeout = timeout if timeout is not None else settings.RUTEN_REQUEST_TIMEOUT_SECONDS
        self._max_retries = max_retries if max_retries is not None else settings.RUTEN_MAX_RETRIES
        self._base_backoff = (
            base_backoff if base_backoff is not None else settings.RUTEN_BASE_BACKOFF_SECONDS
        )
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> RutenClient:
        self._client = httpx.AsyncClient(
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def _request(self, request: RutenApiRequest) -> Any:
        """
        GET an endpoint with retry logic and exponential backoff.

        429, 5xx and transport errors (timeouts included) are retried.
        Any other 4xx fails immediately.
        """
        assert self._client is not None, "Client not initialized. Use 'async with'."

        api_type = request.api_type.value
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            wait_time = self._base_backoff * (2 ** attempt)
            try:
                response = await self._client.get(request.url(), params=request.params())
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                last_error = e
                status_code = e.response.status_code
                logger.warning(
                    "ruten_http_error",
                    api_type=api_type,
                    subject=request.subject,
                    status_code=status_code,
                    attempt=attempt + 1,
                )
                if status_code != 429 and status_code < 500:
                    break

            except httpx.RequestError as e:
                last_error = e
                logger.warning(
                    "ruten_request_error",
                    api_type=api_type,
                    subject=request.subject,
                    error=str(e),
                    error_type=type(e).__name__,
                    attempt=attempt + 1,
                )

            except ValueError as e:
                logger.error(
                    "ruten_invalid_json",
                    api_type=api_type,
                    subject=request.subject,
                    error=str(e),
                )
                raise RemoteFetchError(
                    f"Invalid JSON from {api_type} for {request.subject}",
                    api_type=api_type,
                    subject=request.subject,
                ) from e

            if attempt < self._max_retries:
                await asyncio.sleep(wait_time)

        logger.error(
            "ruten_request_failed",
            api_type=api_type,
            subject=request.subject,
            error=str(last_error),
        )
        raise RemoteFetchError(
            f"Ruten {api_type} request failed for {request.subject}",
            api_type=api_type,
            subject=request.subject,
        ) from last_error

    async def _fetch(self, request: RutenApiRequest, response_model: type[ResponseT]) -> ResponseT:
        data = await self._request(request)
        try:
            return response_model.model_validate(data)
        except ValidationError as e:
            logger.error(
                "ruten_invalid_payload",
                api_type=request.api_type.value,
                subject=request.subject,
                error_count=e.error_count(),
            )
            raise RemoteFetchError(
                f"Unexpected {request.api_type.value} payload for {request.subject}",
                api_type=request.api_type.value,
                subject=request.subject,
            ) from e

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def search_products(self, query_string: str) -> list[str]:
        """
        Search the whole marketplace.

        Args:
            query_string: Search text, usually the product name ("12345+UR").

        Returns:
            Listing ids, cheapest first.
        """
        response = await self._fetch(ProductSearchRequest(query_string=query_string), RutenSearchResponse)
        ids = [row.Id for row in response.Rows if row.Id]
        logger.info("ruten_search_complete", query=query_string, results_count=len(ids))
        return ids

    async def fetch_product_details(self, product_ids: list[str]) -> list[RutenListing]:
        """Fetch listing details for a batch of ids in a single call."""
        if not product_ids:
            return []
        request = ProductDetailRequest(product_ids=",".join(product_ids))
        response = await self._fetch(request, RutenProductDetailResponse)
        logger.debug(
            "ruten_details_complete",
            requested=len(product_ids),
            results_count=len(response.data),
        )
        return response.data

    async def search_shop_products(
        self, shop_id: str, target_product: str, limit: int = 50
    ) -> list[str]:
        """Search one seller's listings. ``limit`` is capped at 50."""
        request = ShopProductSearchRequest(shop_id=shop_id, target_product=target_product, limit=limit)
        response = await self._fetch(request, RutenSearchResponse)
        return [row.Id for row in response.Rows if row.Id]

    async def fetch_shop_shipping_info(self, shop_id: str) -> dict[str, Decimal]:
        """
        Fetch a shop's free-shipping discount conditions.

        Returns:
            Condition name (e.g., "SEVEN") -> minimum order amount.
        """
        response = await self._fetch(ShopShipInfoRequest(shop_id=shop_id), RutenShipInfoResponse)
        return {
            name: condition.arrival_amount
            for name, condition in response.data.discount_conditions.items()
        }

    async def fetch_shop_info(self, shop_id: str) -> str:
        """Resolve a shop id to the canonical seller id. May be empty."""
        response = await self._fetch(ShopInfoRequest(shop_id=shop_id), RutenStoreInfoResponse)
        return response.data.user_id

    async def find_shop_product(self, seller_id: str, target_product: str) -> ShopProduct | None:
        """
        Look up the cheapest listing of a product in one seller's shop.

        Returns:
            The top hit as a ShopProduct, or None if the shop has no match.
        """
        ids = await self.search_shop_products(
            seller_id, target_product, limit=settings.RUTEN_SHOP_SEARCH_MAX_LIMIT
        )
        if not ids:
            return None

        listings = await self.fetch_product_details(ids[:1])
        if not listings:
            return None

        logger.debug(
            "ruten_shop_product_found",
            seller_id=seller_id,
            product=target_product,
            listing_id=listings[0].id,
        )
        return listings[0].to_shop_product()
