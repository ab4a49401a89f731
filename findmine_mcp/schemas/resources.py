from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from findmine_mcp.utils import look_uri, product_uri


class Product(BaseModel):
    id: str = Field(min_length=1)
    color_id: str | None = None
    name: str
    description: str | None = None
    brand: str | None = None
    category: str | None = None
    price: int | None = Field(default=None, ge=0)
    sale_price: int | None = Field(default=None, ge=0)
    formatted_price: str | None = None
    formatted_sale_price: str | None = None
    in_stock: bool = False
    on_sale: bool = False
    url: str | None = None
    image_url: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str | None]:
        return self.id, self.color_id

    @property
    def uri(self) -> str:
        return product_uri(self.id)


class Look(BaseModel):
    id: str = Field(min_length=1)
    title: str | None = None
    description: str | None = None
    url: str | None = None
    image_url: str | None = None
    product_ids: list[str] = Field(default_factory=list)
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def uri(self) -> str:
        return look_uri(self.id)
