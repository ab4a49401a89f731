from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from findmine_mcp.core.errors import InvalidInputError
from findmine_mcp.schemas.upstream import EventType, Gender


class _ToolInput(BaseModel):
    customer_id: str | None = Field(default=None, description="Customer ID for personalization and analytics")
    session_id: str | None = Field(default=None, description="Session ID for tracking and personalization")
    api_version: str | None = Field(default=None, description="API version, overrides FINDMINE_API_VERSION")


class GetCompleteTheLookInput(_ToolInput):
    product_id: str = Field(min_length=1, description="ID of the product")
    product_color_id: str | None = Field(default=None, description="Color ID of the product")
    in_stock: bool = True
    on_sale: bool = False
    return_pdp_item: bool = Field(default=True, description="Return the source product in the response")
    customer_gender: Gender | None = Field(default=None, description="M = Men, W = Women, U = Unknown")


class GetVisuallySimilarInput(_ToolInput):
    product_id: str = Field(min_length=1)
    product_color_id: str | None = None
    limit: int = Field(default=10, gt=0)
    offset: int = Field(default=0, ge=0)
    customer_gender: Gender | None = None


class TrackInteractionInput(_ToolInput):
    event_type: EventType
    product_id: str = Field(min_length=1)
    product_color_id: str | None = None
    look_id: str | None = None
    source_product_id: str | None = Field(default=None, description="Product that led to this interaction")
    price: float | None = Field(default=None, gt=0)
    quantity: int = Field(default=1, gt=0)
    force_enable: bool = False


class ItemDetailInput(BaseModel):
    product_id: str = Field(min_length=1)
    product_color_id: str | None = None
    in_stock: bool
    on_sale: bool


class UpdateItemDetailsInput(_ToolInput):
    items: list[ItemDetailInput] = Field(min_length=1)
    force_enable: bool = False


TOOL_INPUTS: dict[str, type[BaseModel]] = {
    "get_complete_the_look": GetCompleteTheLookInput,
    "get_visually_similar": GetVisuallySimilarInput,
    "track_interaction": TrackInteractionInput,
    "update_item_details": UpdateItemDetailsInput,
}


def _format_issues(exc: ValidationError) -> list[str]:
    issues = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ()))
        issues.append(f"{path}: {err.get('msg')}" if path else str(err.get("msg")))
    return issues


def validate_tool_input(tool_name: str, args: dict[str, Any] | None) -> BaseModel:
    schema = TOOL_INPUTS.get(tool_name)
    if schema is None:
        raise InvalidInputError(f"Unknown tool: {tool_name}")
    try:
        return schema.model_validate(args or {})
    except ValidationError as exc:
        issues = _format_issues(exc)
        raise InvalidInputError("Validation failed: " + "; ".join(issues), issues) from exc
