from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from findmine_mcp.cache import TTLCache, make_cache_key
from findmine_mcp.clients.findmine import FindMineClient
from findmine_mcp.core.config import Settings
from findmine_mcp.core.errors import FindMineResponseError, InvalidInputError
from findmine_mcp.schemas.resources import Look, Product
from findmine_mcp.schemas.upstream import (
    AnalyticsRequest,
    AnalyticsResponse,
    CompleteTheLookRequest,
    EventType,
    Gender,
    ItemDetail,
    ItemDetailsUpdateRequest,
    ItemDetailsUpdateResponse,
    RequestContext,
    VisuallySimilarRequest,
)
from findmine_mcp.services.resource_mapper import look_products, map_look, map_product
from findmine_mcp.services.resource_store import ResourceStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CompleteTheLookResult:
    product: Product | None
    looks: list[Look] = field(default_factory=list)


@dataclass(slots=True)
class VisuallySimilarResult:
    products: list[Product] = field(default_factory=list)
    total: int = 0


def _flag_part(value: bool | None) -> str | None:
    if value is None:
        return None
    return "true" if value else "false"


def _int_part(value: int | None) -> str | None:
    return None if value is None else str(value)


def _require_product_id(product_id: str) -> str:
    clean = (product_id or "").strip()
    if not clean:
        raise InvalidInputError("product_id is required")
    return clean


class FindMineService:
    """Caching and entity-publishing front of the FindMine client.

    Read operations are cached by a fingerprint of the parameters that shape
    the response; session and customer ids never take part, so cached
    results are shared across sessions. Every entity a read returns is also
    published into the resource store. Writes go straight to the client.
    """

    def __init__(
        self,
        client: FindMineClient,
        cache_enabled: bool = True,
        cache_ttl_ms: int = 3_600_000,
        default_session_id: str = "mcp-default-session",
        store: ResourceStore | None = None,
        cache_max_entries: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._cache_enabled = cache_enabled
        self._default_session_id = default_session_id
        self._store = store if store is not None else ResourceStore()
        self._complete_the_look_cache: TTLCache[dict[str, Any]] = TTLCache(
            cache_ttl_ms, max_entries=cache_max_entries, clock=clock
        )
        self._visually_similar_cache: TTLCache[dict[str, Any]] = TTLCache(
            cache_ttl_ms, max_entries=cache_max_entries, clock=clock
        )

    @property
    def store(self) -> ResourceStore:
        return self._store

    def _context(
        self,
        session_id: str | None,
        customer_id: str | None,
        gender: Gender | None = None,
        api_version: str | None = None,
    ) -> RequestContext:
        return RequestContext(
            session_id=session_id or self._default_session_id,
            customer_id=customer_id or None,
            gender=gender,
            api_version=api_version or None,
        )

    async def _cached_fetch(
        self,
        cache: TTLCache[dict[str, Any]],
        key: str,
        use_cache: bool,
        fetch: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        if self._cache_enabled and use_cache:
            cached = cache.get(key)
            if cached is not None:
                logger.debug("cache_hit key=%s", key)
                return cached
        logger.debug("cache_miss key=%s", key)
        response = await fetch()
        if self._cache_enabled:
            cache.set(key, response)
        return response

    async def get_complete_the_look(
        self,
        product_id: str,
        in_stock: bool,
        on_sale: bool,
        *,
        color_id: str | None = None,
        session_id: str | None = None,
        customer_id: str | None = None,
        return_pdp_item: bool | None = None,
        gender: Gender | None = None,
        use_cache: bool = True,
        api_version: str | None = None,
    ) -> CompleteTheLookResult:
        product_id = _require_product_id(product_id)
        color_id = color_id or None
        request = CompleteTheLookRequest(
            product_id=product_id,
            in_stock=in_stock,
            on_sale=on_sale,
            color_id=color_id,
            return_pdp_item=return_pdp_item,
            context=self._context(session_id, customer_id, gender, api_version),
        )
        key = make_cache_key(
            [
                "complete_the_look",
                product_id,
                color_id,
                _flag_part(in_stock),
                _flag_part(on_sale),
                _flag_part(return_pdp_item),
                gender,
                api_version or None,
            ]
        )
        response = await self._cached_fetch(
            self._complete_the_look_cache,
            key,
            use_cache,
            lambda: self._client.get_complete_the_look(request),
        )

        product = None
        pdp_item = response.get("pdp_item")
        if pdp_item is not None:
            product = map_product(pdp_item)
            if product is None:
                logger.warning("pdp_item_mapping_skipped product_id=%s", product_id)
            else:
                self._store.put_product(product)

        looks: list[Look] = []
        for index, raw_look in enumerate(response.get("looks") or []):
            look = map_look(raw_look)
            if look is None:
                logger.warning("look_mapping_skipped source_product_id=%s index=%d", product_id, index)
                continue
            self._store.put_look(look)
            looks.append(look)

            for raw_product in look_products(raw_look):
                item = map_product(raw_product)
                if item is None:
                    logger.warning("look_product_mapping_skipped look_id=%s", look.id)
                    continue
                self._store.put_product(item)

        return CompleteTheLookResult(product=product, looks=looks)

    async def get_visually_similar(
        self,
        product_id: str,
        *,
        color_id: str | None = None,
        session_id: str | None = None,
        customer_id: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        gender: Gender | None = None,
        use_cache: bool = True,
        api_version: str | None = None,
    ) -> VisuallySimilarResult:
        product_id = _require_product_id(product_id)
        color_id = color_id or None
        request = VisuallySimilarRequest(
            product_id=product_id,
            color_id=color_id,
            limit=limit,
            offset=offset,
            context=self._context(session_id, customer_id, gender, api_version),
        )
        key = make_cache_key(
            [
                "visually_similar",
                product_id,
                color_id,
                _int_part(limit),
                _int_part(offset),
                gender,
                api_version or None,
            ]
        )
        response = await self._cached_fetch(
            self._visually_similar_cache,
            key,
            use_cache,
            lambda: self._client.get_visually_similar(request),
        )

        products: list[Product] = []
        raw_products = response.get("products") or []
        for index, raw_product in enumerate(raw_products):
            product = map_product(raw_product)
            if product is None:
                logger.warning("similar_product_mapping_skipped source_product_id=%s index=%d", product_id, index)
                continue
            self._store.put_product(product)
            products.append(product)

        total = response.get("total")
        if not isinstance(total, int) or isinstance(total, bool):
            total = len(raw_products)
        return VisuallySimilarResult(products=products, total=total)

    async def track_event(
        self,
        event_type: EventType,
        product_id: str,
        *,
        color_id: str | None = None,
        look_id: str | None = None,
        source_product_id: str | None = None,
        price: float | None = None,
        quantity: int | None = None,
        session_id: str | None = None,
        customer_id: str | None = None,
        api_version: str | None = None,
    ) -> AnalyticsResponse:
        request = AnalyticsRequest(
            event_type=event_type,
            product_id=_require_product_id(product_id),
            color_id=color_id or None,
            look_id=look_id or None,
            source_product_id=source_product_id or None,
            price=price,
            quantity=quantity,
            context=self._context(session_id, customer_id, api_version=api_version),
        )
        response = await self._client.track_event(request)
        return _validate_write(AnalyticsResponse, response, "analytics")

    async def update_item_details(
        self,
        items: list[ItemDetail],
        *,
        session_id: str | None = None,
        customer_id: str | None = None,
        api_version: str | None = None,
    ) -> ItemDetailsUpdateResponse:
        if not items:
            raise InvalidInputError("items must not be empty")
        for item in items:
            _require_product_id(item.product_id)
        request = ItemDetailsUpdateRequest(
            items=list(items),
            context=self._context(session_id, customer_id, api_version=api_version),
        )
        response = await self._client.update_item_details(request)
        return _validate_write(ItemDetailsUpdateResponse, response, "item-details")

    def get_product(self, product_id: str) -> Product | None:
        return self._store.get_product(product_id)

    def get_look(self, look_id: str) -> Look | None:
        return self._store.get_look(look_id)

    def get_all_products(self) -> list[Product]:
        return self._store.all_products()

    def get_all_looks(self) -> list[Look]:
        return self._store.all_looks()

    def clean_cache(self) -> int:
        return self._complete_the_look_cache.clean_expired() + self._visually_similar_cache.clean_expired()


def _validate_write(model, response: dict[str, Any], operation: str):
    try:
        return model.model_validate(response)
    except ValidationError as exc:
        raise FindMineResponseError(f"FindMine {operation} response has an unexpected shape") from exc


def build_client(settings: Settings) -> FindMineClient:
    return FindMineClient(
        base_url=settings.api_url,
        application_id=settings.app_id,
        api_version=settings.api_version,
        default_region=settings.default_region,
        default_language=settings.default_language,
        retry_count=settings.retry_count,
        retry_delay_ms=settings.retry_delay_ms,
        timeout_seconds=settings.timeout_seconds,
    )


def build_service(settings: Settings, client: FindMineClient | None = None) -> FindMineService:
    return FindMineService(
        client if client is not None else build_client(settings),
        cache_enabled=settings.cache_enabled,
        cache_ttl_ms=settings.cache_ttl_ms,
        default_session_id=settings.default_session_id,
        store=ResourceStore(
            max_products=settings.store_max_products,
            max_looks=settings.store_max_looks,
        ),
        cache_max_entries=settings.cache_max_entries,
    )
