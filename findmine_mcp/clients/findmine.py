"""HTTP client for the FindMine recommendation API.

This is the only module that talks to FindMine. Every call is retried with
a fixed delay on any failure (transport, non-2xx status, unparseable body)
and the last error is raised once the retry budget is spent.

Complete-the-look responses are rewritten into one canonical shape before
they leave this module, since different API versions disagree on how a
look names its id and where it keeps its products.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from findmine_mcp.core.errors import (
    FindMineAPIError,
    FindMineError,
    FindMineResponseError,
    FindMineTransportError,
)
from findmine_mcp.schemas.upstream import (
    AnalyticsRequest,
    CompleteTheLookRequest,
    ItemDetailsUpdateRequest,
    RequestContext,
    VisuallySimilarRequest,
)

logger = logging.getLogger(__name__)

LOOK_ID_FIELDS = ("look_id", "id")
LOOK_PRODUCT_FIELDS = ("products", "items")
PRODUCT_ID_FIELDS = ("product_id", "item_id")

Sleep = Callable[[float], Awaitable[None]]


class FindMineClient:
    def __init__(
        self,
        base_url: str,
        application_id: str,
        api_version: str = "v3",
        default_region: str | None = None,
        default_language: str | None = None,
        retry_count: int = 3,
        retry_delay_ms: int = 1000,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.application_id = application_id
        self.api_version = api_version
        self.default_region = default_region
        self.default_language = default_language
        self.retry_count = max(0, retry_count)
        self.retry_delay_ms = max(0, retry_delay_ms)
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def __aenter__(self) -> "FindMineClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_complete_the_look(self, request: CompleteTheLookRequest) -> dict[str, Any]:
        params = {
            **self._base_params(request.context),
            "product_id": request.product_id,
            "product_color_id": request.color_id,
            "product_in_stock": request.in_stock,
            "product_on_sale": request.on_sale,
            "return_pdp_item": request.return_pdp_item,
        }
        payload = await self._request("GET", self._path("complete-the-look", request.context), params)
        return normalize_complete_the_look(payload)

    async def get_visually_similar(self, request: VisuallySimilarRequest) -> dict[str, Any]:
        params = {
            **self._base_params(request.context),
            "product_id": request.product_id,
            "product_color_id": request.color_id,
            "limit": request.limit,
            "offset": request.offset,
        }
        payload = await self._request("GET", self._path("visually-similar", request.context), params)
        products = payload.get("products")
        payload["products"] = [_normalize_product(p) for p in products] if isinstance(products, list) else []
        return payload

    async def track_event(self, request: AnalyticsRequest) -> dict[str, Any]:
        body = {
            **self._base_params(request.context),
            "event_type": request.event_type,
            "product_id": request.product_id,
            "product_color_id": request.color_id,
            "look_id": request.look_id,
            "source_product_id": request.source_product_id,
            "price": request.price,
            "quantity": request.quantity,
        }
        return await self._request("POST", self._path("analytics", request.context), body)

    async def update_item_details(self, request: ItemDetailsUpdateRequest) -> dict[str, Any]:
        body = {
            **self._base_params(request.context),
            "items": [
                _drop_absent(
                    {
                        "product_id": item.product_id,
                        "product_color_id": item.color_id,
                        "in_stock": item.in_stock,
                        "on_sale": item.on_sale,
                    }
                )
                for item in request.items
            ],
        }
        return await self._request("POST", self._path("item-details", request.context), body)

    def _path(self, operation: str, context: RequestContext) -> str:
        version = context.api_version or self.api_version
        return f"/api/{version}/{operation}"

    def _base_params(self, context: RequestContext) -> dict[str, Any]:
        return {
            "application": self.application_id,
            "customer_session_id": context.session_id,
            "customer_id": context.customer_id,
            "customer_gender": context.gender,
            "region": self.default_region,
            "language": self.default_language,
        }

    async def _request(self, method: str, path: str, params: dict[str, Any]) -> dict[str, Any]:
        params = _drop_absent(params)
        attempts = self.retry_count + 1
        last_error: FindMineError | None = None

        for attempt in range(1, attempts + 1):
            try:
                return await self._send_once(method, path, params)
            except FindMineError as exc:
                last_error = exc
                logger.warning(
                    "findmine_request_failed method=%s path=%s attempt=%d/%d error=%s",
                    method,
                    path,
                    attempt,
                    attempts,
                    exc.message,
                )
            if attempt < attempts:
                await self._sleep(self.retry_delay_ms / 1000.0)

        logger.error("findmine_request_exhausted method=%s path=%s attempts=%d", method, path, attempts)
        assert last_error is not None
        raise last_error

    async def _send_once(self, method: str, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            if method == "GET":
                response = await self._http.get(path, params=_query_params(params))
            else:
                response = await self._http.post(path, json=params)
        except httpx.TimeoutException as exc:
            raise FindMineTransportError(f"FindMine API request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise FindMineTransportError(f"FindMine API transport error: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None
            if response.is_success:
                raise FindMineResponseError(
                    f"FindMine API returned a body that is not valid JSON (status {response.status_code})"
                )

        if not response.is_success:
            message, code = _extract_error(data)
            raise FindMineAPIError(
                f"FindMine API error: {message}" if message else f"FindMine API request failed with status {response.status_code}",
                status_code=response.status_code,
                code=code,
            )

        if not isinstance(data, dict):
            raise FindMineResponseError("FindMine API returned a JSON value that is not an object")
        return data


def _drop_absent(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


def _query_params(params: dict[str, Any]) -> dict[str, str]:
    out: dict[str, str] = {}
    for key, value in params.items():
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
        else:
            out[key] = str(value)
    return out


def _extract_error(data: Any) -> tuple[str | None, str | None]:
    if not isinstance(data, dict):
        return None, None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        code = error.get("code")
        return (str(message) if message else None), (str(code) if code else None)
    if isinstance(error, str) and error:
        return error, None
    message = data.get("message")
    return (str(message) if message else None), None


def _first_present(row: dict[str, Any], fields: tuple[str, ...]) -> Any:
    for name in fields:
        value = row.get(name)
        if value not in (None, "", [], {}):
            return value
    return None


def _normalize_product(product: Any) -> Any:
    if not isinstance(product, dict):
        return product
    if product.get("product_id"):
        return product
    product_id = _first_present(product, PRODUCT_ID_FIELDS)
    if product_id is None:
        return product
    return {**product, "product_id": product_id}


def _resolve_look_products(look: dict[str, Any]) -> list[Any]:
    for name in LOOK_PRODUCT_FIELDS:
        value = look.get(name)
        if isinstance(value, dict):
            value = list(value.values())
        if isinstance(value, list) and value:
            return [_normalize_product(p) for p in value]
    return []


def normalize_look(look: Any) -> Any:
    """Rewrite one look into the canonical shape.

    The canonical look has ``look_id`` (first non-empty of ``look_id``/``id``,
    else ``None``) and ``products`` (first non-empty of ``products``/``items``,
    mappings reduced to their values, else ``[]``). A bare ``order`` list of
    ids is kept as-is for the mapper. Non-mapping values pass through.
    """
    if not isinstance(look, dict):
        return look
    canonical = {k: v for k, v in look.items() if k not in LOOK_ID_FIELDS + LOOK_PRODUCT_FIELDS}
    look_id = _first_present(look, LOOK_ID_FIELDS)
    canonical["look_id"] = str(look_id) if look_id is not None else None
    canonical["products"] = _resolve_look_products(look)
    return canonical


def normalize_complete_the_look(payload: dict[str, Any]) -> dict[str, Any]:
    looks = payload.get("looks")
    if isinstance(looks, dict):
        looks = list(looks.values())
    pdp_item = payload.get("pdp_item")
    return {
        **payload,
        "pdp_item": _normalize_product(pdp_item) if isinstance(pdp_item, dict) else None,
        "looks": [normalize_look(look) for look in looks] if isinstance(looks, list) else [],
    }

