"""FindMine MCP server - outfit and visually-similar recommendations as MCP tools."""
from __future__ import annotations

import json
import logging
from typing import Any

from fastmcp import FastMCP

from findmine_mcp import handlers
from findmine_mcp.core.config import settings
from findmine_mcp.core.logging import configure_logging
from findmine_mcp.services.findmine import build_service

logger = logging.getLogger("findmine-mcp")

mcp = FastMCP("FindMine Shopping Stylist")

SERVICE = build_service(settings)


@mcp.tool()
async def get_complete_the_look(
    product_id: str,
    product_color_id: str | None = None,
    in_stock: bool = True,
    on_sale: bool = False,
    return_pdp_item: bool = True,
    customer_id: str | None = None,
    customer_gender: str | None = None,
    session_id: str | None = None,
    api_version: str | None = None,
) -> dict[str, Any]:
    """Get outfit ("complete the look") recommendations for a product."""
    return await handlers.get_complete_the_look(SERVICE, _args(locals()))


@mcp.tool()
async def get_visually_similar(
    product_id: str,
    product_color_id: str | None = None,
    limit: int = 10,
    offset: int = 0,
    customer_id: str | None = None,
    customer_gender: str | None = None,
    session_id: str | None = None,
    api_version: str | None = None,
) -> dict[str, Any]:
    """Find products that look similar to the given product."""
    return await handlers.get_visually_similar(SERVICE, _args(locals()))


@mcp.tool()
async def track_interaction(
    event_type: str,
    product_id: str,
    product_color_id: str | None = None,
    look_id: str | None = None,
    source_product_id: str | None = None,
    price: float | None = None,
    quantity: int = 1,
    customer_id: str | None = None,
    session_id: str | None = None,
    force_enable: bool = False,
    api_version: str | None = None,
) -> dict[str, Any]:
    """Track a view, click, add_to_cart or purchase event for a product."""
    return await handlers.track_interaction(SERVICE, _args(locals()), tracking_enabled=settings.enable_tracking)


@mcp.tool()
async def update_item_details(
    items: list[dict[str, Any]],
    customer_id: str | None = None,
    session_id: str | None = None,
    force_enable: bool = False,
    api_version: str | None = None,
) -> dict[str, Any]:
    """Update stock and sale status for one or more items."""
    return await handlers.update_item_details(
        SERVICE,
        _args(locals()),
        item_updates_enabled=settings.enable_item_updates,
    )


@mcp.resource("product://{product_id}", mime_type="application/vnd.findmine.product+json")
def product_resource(product_id: str) -> str:
    """A product seen in an earlier recommendation."""
    return handlers.read_product(SERVICE, product_id)


@mcp.resource("look://{look_id}", mime_type="application/vnd.findmine.look+json")
def look_resource(look_id: str) -> str:
    """A look (outfit) seen in an earlier recommendation."""
    return handlers.read_look(SERVICE, look_id)


@mcp.resource("findmine://catalog", mime_type="application/json")
def catalog_resource() -> str:
    """Every product and look fetched so far in this process."""
    return json.dumps(handlers.list_catalog(SERVICE), indent=2)


@mcp.prompt()
def outfit_completion(product_id: str) -> str:
    """Get styling advice and a complete outfit for a product."""
    return handlers.outfit_completion_prompt(product_id)


def _args(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def main() -> None:
    configure_logging(settings.log_level)
    logger.info(
        "starting FindMine MCP server transport=%s api_url=%s api_version=%s cache_enabled=%s",
        settings.transport,
        settings.api_url,
        settings.api_version,
        settings.cache_enabled,
    )
    if settings.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport=settings.transport, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
