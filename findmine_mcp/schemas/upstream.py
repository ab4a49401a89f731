"""Wire-level request and response shapes of the FindMine API."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Gender = Literal["M", "W", "U"]
EventType = Literal["view", "click", "add_to_cart", "purchase"]


@dataclass(slots=True)
class RequestContext:
    session_id: str
    customer_id: str | None = None
    gender: Gender | None = None
    api_version: str | None = None


@dataclass(slots=True)
class CompleteTheLookRequest:
    product_id: str
    in_stock: bool
    on_sale: bool
    context: RequestContext
    color_id: str | None = None
    return_pdp_item: bool | None = None


@dataclass(slots=True)
class VisuallySimilarRequest:
    product_id: str
    context: RequestContext
    color_id: str | None = None
    limit: int | None = None
    offset: int | None = None


@dataclass(slots=True)
class AnalyticsRequest:
    event_type: EventType
    product_id: str
    context: RequestContext
    color_id: str | None = None
    look_id: str | None = None
    source_product_id: str | None = None
    price: float | None = None
    quantity: int | None = None


@dataclass(slots=True)
class ItemDetail:
    product_id: str
    in_stock: bool
    on_sale: bool
    color_id: str | None = None


@dataclass(slots=True)
class ItemDetailsUpdateRequest:
    items: list[ItemDetail]
    context: RequestContext


class AnalyticsResponse(BaseModel):
    success: bool = False
    event_id: str | None = None

    @field_validator("event_id", mode="before")
    @classmethod
    def _stringify_event_id(cls, value):
        return None if value is None else str(value)


class ItemUpdateFailure(BaseModel):
    product_id: str
    product_color_id: str | None = None
    reason: str = ""

    @field_validator("product_id", "product_color_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return None if value is None else str(value)

    @field_validator("reason", mode="before")
    @classmethod
    def _reason_or_empty(cls, value):
        return "" if value is None else str(value)


class ItemDetailsUpdateResponse(BaseModel):
    success: bool = False
    updated_count: int = 0
    failed_count: int = 0
    failures: list[ItemUpdateFailure] = Field(default_factory=list)

    @field_validator("updated_count", "failed_count", mode="before")
    @classmethod
    def _count_or_zero(cls, value):
        return 0 if value is None else value

    @field_validator("failures", mode="before")
    @classmethod
    def _failures_or_empty(cls, value):
        return [] if value is None else value
