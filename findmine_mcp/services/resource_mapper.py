"""Pure conversion of canonical FindMine payloads into stored entities.

Mapping never raises on bad upstream data: a record that cannot become an
entity maps to ``None`` and the caller decides what to log.
"""
from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from pydantic import ValidationError

from findmine_mcp.schemas.resources import Look, Product
from findmine_mcp.utils import format_price

logger = logging.getLogger(__name__)

SYNTHETIC_LOOK_PREFIX = "synthetic-look-"


def _clean_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _minor_units(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if not isinstance(value, int) or value < 0:
        return None
    return value


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def _attributes(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def map_product(raw: Any) -> Product | None:
    if not isinstance(raw, dict):
        return None
    product_id = _clean_str(raw.get("product_id"))
    if product_id is None:
        return None

    price = _minor_units(raw.get("price"))
    sale_price = _minor_units(raw.get("sale_price"))
    try:
        return Product(
            id=product_id,
            color_id=_clean_str(raw.get("product_color_id")),
            name=_clean_str(raw.get("name")) or f"Product {product_id}",
            description=_clean_str(raw.get("description")),
            brand=_clean_str(raw.get("brand")),
            category=_clean_str(raw.get("category")),
            price=price,
            sale_price=sale_price,
            formatted_price=format_price(price),
            formatted_sale_price=format_price(sale_price),
            in_stock=_flag(raw.get("in_stock")),
            on_sale=_flag(raw.get("on_sale")),
            url=_clean_str(raw.get("url")),
            image_url=_clean_str(raw.get("image_url")),
            attributes=_attributes(raw.get("attributes")),
        )
    except ValidationError:
        logger.debug("product_validation_failed product_id=%s", product_id, exc_info=True)
        return None


def look_product_ids(raw: dict[str, Any]) -> list[str]:
    """Ordered product ids of a look.

    An embedded product list wins over a bare ``order`` list of ids.
    Entries without a usable id are dropped; order is preserved.
    """
    ids = []
    for product in look_products(raw):
        if not isinstance(product, dict):
            continue
        pid = _clean_str(product.get("product_id")) or _clean_str(product.get("item_id"))
        if pid:
            ids.append(pid)
    if ids:
        return ids

    order = raw.get("order")
    if isinstance(order, list):
        return [pid for pid in (_clean_str(v) for v in order) if pid]
    return []


def synthetic_look_id(raw: dict[str, Any]) -> str:
    encoded = json.dumps(raw, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha1(encoded.encode("utf-8")).hexdigest()[:24]
    return f"{SYNTHETIC_LOOK_PREFIX}{digest}"


def map_look(raw: Any) -> Look | None:
    if not isinstance(raw, dict):
        return None
    look_id = _clean_str(raw.get("look_id")) or _clean_str(raw.get("id")) or synthetic_look_id(raw)
    try:
        return Look(
            id=look_id,
            title=_clean_str(raw.get("title")) or f"Look {look_id}",
            description=_clean_str(raw.get("description")),
            url=_clean_str(raw.get("url")),
            image_url=_clean_str(raw.get("image_url")),
            product_ids=look_product_ids(raw),
            attributes=_attributes(raw.get("attributes")),
        )
    except ValidationError:
        logger.debug("look_validation_failed look_id=%s", look_id, exc_info=True)
        return None


def look_products(raw: dict[str, Any]) -> list[Any]:
    """Embedded product objects of a look, in display order."""
    for name in ("products", "items"):
        products = raw.get(name)
        if isinstance(products, dict):
            products = list(products.values())
        if isinstance(products, list) and products:
            return products
    return []
