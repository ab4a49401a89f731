"""Tool and resource handlers behind the MCP server.

Each handler validates raw tool arguments, makes exactly one service call
and wraps the outcome in the ok/error envelope returned to the host.
"""
from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from findmine_mcp.core.context import request_id_ctx, tool_ctx
from findmine_mcp.core.errors import FindMineAPIError, FindMineError, InvalidInputError
from findmine_mcp.schemas.resources import Look, Product
from findmine_mcp.schemas.tool_inputs import (
    GetCompleteTheLookInput,
    GetVisuallySimilarInput,
    TrackInteractionInput,
    UpdateItemDetailsInput,
    validate_tool_input,
)
from findmine_mcp.schemas.upstream import ItemDetail
from findmine_mcp.services.findmine import FindMineService
from findmine_mcp.utils import (
    elapsed_ms,
    error_response,
    now_ms,
    ok_response,
    to_iso,
)

logger = logging.getLogger(__name__)


class FeatureDisabledError(Exception):
    pass


async def _run_tool(intent: str, call: Callable[[], Awaitable[dict[str, Any]]]) -> dict[str, Any]:
    t0 = now_ms()
    rid_token = request_id_ctx.set(uuid.uuid4().hex)
    tool_token = tool_ctx.set(intent)
    try:
        data = await call()
        return ok_response(intent, data=data, timing_ms={"total": elapsed_ms(t0)})
    except InvalidInputError as exc:
        logger.info("tool_invalid_input issues=%d", len(exc.issues))
        return error_response(
            intent,
            "invalid_input",
            exc.message,
            {"total": elapsed_ms(t0)},
            data={"issues": exc.issues} if exc.issues else None,
        )
    except FeatureDisabledError as exc:
        return error_response(intent, "feature_disabled", str(exc), {"total": elapsed_ms(t0)})
    except FindMineAPIError as exc:
        logger.error("tool_upstream_error status=%s", exc.status_code)
        return error_response(
            intent,
            "upstream_error",
            exc.message,
            {"total": elapsed_ms(t0)},
            data={"status_code": exc.status_code},
        )
    except FindMineError as exc:
        logger.error("tool_upstream_unavailable error=%s", type(exc).__name__)
        return error_response(intent, "upstream_unavailable", exc.message, {"total": elapsed_ms(t0)})
    except Exception:
        logger.exception("tool_failed")
        return error_response(intent, "internal_error", f"Failed to run {intent}.", {"total": elapsed_ms(t0)})
    finally:
        tool_ctx.reset(tool_token)
        request_id_ctx.reset(rid_token)


def _product_ref(service: FindMineService, product_id: str) -> dict[str, Any]:
    product = service.get_product(product_id)
    return {
        "product_id": product_id,
        "name": product.name if product else "",
        "uri": product.uri if product else None,
    }


async def get_complete_the_look(service: FindMineService, args: dict[str, Any] | None) -> dict[str, Any]:
    async def _call() -> dict[str, Any]:
        params: GetCompleteTheLookInput = validate_tool_input("get_complete_the_look", args)
        result = await service.get_complete_the_look(
            params.product_id,
            params.in_stock,
            params.on_sale,
            color_id=params.product_color_id,
            session_id=params.session_id,
            customer_id=params.customer_id,
            return_pdp_item=params.return_pdp_item,
            gender=params.customer_gender,
            api_version=params.api_version,
        )
        looks = [
            {
                "look_id": look.id,
                "title": look.title or "",
                "description": look.description or "",
                "image_url": look.image_url or "",
                "uri": look.uri,
                "products": [_product_ref(service, pid) for pid in look.product_ids],
            }
            for look in result.looks
        ]
        product = None
        if result.product is not None:
            product = {
                "product_id": result.product.id,
                "name": result.product.name,
                "uri": result.product.uri,
            }
        return {"product": product, "looks": looks, "total_looks": len(looks)}

    return await _run_tool("get_complete_the_look", _call)


async def get_visually_similar(service: FindMineService, args: dict[str, Any] | None) -> dict[str, Any]:
    async def _call() -> dict[str, Any]:
        params: GetVisuallySimilarInput = validate_tool_input("get_visually_similar", args)
        result = await service.get_visually_similar(
            params.product_id,
            color_id=params.product_color_id,
            session_id=params.session_id,
            customer_id=params.customer_id,
            limit=params.limit,
            offset=params.offset,
            gender=params.customer_gender,
            api_version=params.api_version,
        )
        return {
            "products": [{"product_id": p.id, "name": p.name, "uri": p.uri} for p in result.products],
            "total": result.total,
            "limit": params.limit,
            "offset": params.offset,
            "source_product_id": params.product_id,
        }

    return await _run_tool("get_visually_similar", _call)


async def track_interaction(
    service: FindMineService,
    args: dict[str, Any] | None,
    tracking_enabled: bool,
) -> dict[str, Any]:
    async def _call() -> dict[str, Any]:
        params: TrackInteractionInput = validate_tool_input("track_interaction", args)
        if not tracking_enabled and not params.force_enable:
            raise FeatureDisabledError(
                "Tracking is disabled. Set FINDMINE_ENABLE_TRACKING=true or use force_enable=true to enable it."
            )
        result = await service.track_event(
            params.event_type,
            params.product_id,
            color_id=params.product_color_id,
            look_id=params.look_id,
            source_product_id=params.source_product_id,
            price=params.price,
            quantity=params.quantity,
            session_id=params.session_id,
            customer_id=params.customer_id,
            api_version=params.api_version,
        )
        return {
            "success": result.success,
            "event_id": result.event_id,
            "event_type": params.event_type,
            "product_id": params.product_id,
            "timestamp": to_iso(datetime.now(timezone.utc)),
        }

    return await _run_tool("track_interaction", _call)


async def update_item_details(
    service: FindMineService,
    args: dict[str, Any] | None,
    item_updates_enabled: bool,
) -> dict[str, Any]:
    async def _call() -> dict[str, Any]:
        params: UpdateItemDetailsInput = validate_tool_input("update_item_details", args)
        if not item_updates_enabled and not params.force_enable:
            raise FeatureDisabledError(
                "Item details updates are disabled. Set FINDMINE_ENABLE_ITEM_UPDATES=true "
                "or use force_enable=true to enable it."
            )
        items = [
            ItemDetail(
                product_id=item.product_id,
                color_id=item.product_color_id,
                in_stock=item.in_stock,
                on_sale=item.on_sale,
            )
            for item in params.items
        ]
        result = await service.update_item_details(
            items,
            session_id=params.session_id,
            customer_id=params.customer_id,
            api_version=params.api_version,
        )
        return {
            "success": result.success,
            "updated_count": result.updated_count,
            "failed_count": result.failed_count,
            "failures": [f.model_dump(exclude_none=True) for f in result.failures],
            "timestamp": to_iso(datetime.now(timezone.utc)),
        }

    return await _run_tool("update_item_details", _call)


def _entity_json(entity: Product | Look) -> str:
    return json.dumps(entity.model_dump(), indent=2)


def read_product(service: FindMineService, product_id: str) -> str:
    product = service.get_product(product_id)
    if product is None:
        raise LookupError(f"Product {product_id} not found")
    return _entity_json(product)


def read_look(service: FindMineService, look_id: str) -> str:
    look = service.get_look(look_id)
    if look is None:
        raise LookupError(f"Look {look_id} not found")
    return _entity_json(look)


def list_catalog(service: FindMineService) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for product in service.get_all_products():
        entries.append(
            {
                "uri": product.uri,
                "kind": "product",
                "name": product.name,
                "description": product.description or f"Product: {product.name}",
            }
        )
    for look in service.get_all_looks():
        entries.append(
            {
                "uri": look.uri,
                "kind": "look",
                "name": look.title or f"Look {look.id}",
                "description": look.description or f"Complete the look outfit {look.id}",
            }
        )
    return entries


def outfit_completion_prompt(product_id: str) -> str:
    return (
        f"A shopper is looking at product {product_id}. Call the get_complete_the_look tool for it, "
        "read the returned look and product resources, and explain why the recommended items work "
        "together: colour coordination, occasion, and price (use formatted_price or "
        "formatted_sale_price for display)."
    )
