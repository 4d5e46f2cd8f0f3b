"""Pydantic schemas for API payloads."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import ItemId


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AddItemRequest(CamelModel):
    # Required fields are checked by the order model so the error text stays uniform.
    id: Optional[ItemId] = None
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = 1
    category: Optional[str] = None
    image: Optional[str] = None


class RemoveItemRequest(CamelModel):
    id: Optional[ItemId] = None


class UpdateQuantityRequest(CamelModel):
    id: Optional[ItemId] = None
    quantity: Optional[int] = None


class ApplyDiscountRequest(CamelModel):
    discount: Optional[float] = None


class SaveCompletedOrderRequest(CamelModel):
    payment_method: Optional[str] = None
    received_amount: Optional[float] = None
    change: Optional[float] = None


class CompleteOrderRequest(CamelModel):
    payment_method: Optional[str] = None
    customer_info: Optional[Any] = None


class StatusUpdateRequest(CamelModel):
    status: Optional[str] = None
    estimated_time: Optional[float] = None
    message: Optional[str] = None


class CustomStatusRequest(CamelModel):
    status: Optional[str] = None
    message: Optional[str] = None


class ClearRequest(CamelModel):
    reason: Optional[str] = None


class OrderEnvelope(BaseModel):
    """Success envelope carrying the current order snapshot."""

    success: bool = True
    order: Optional[dict[str, Any]] = None


class HistoryEnvelope(BaseModel):
    orders: list[dict[str, Any]] = Field(default_factory=list)


class SavedOrderResponse(CamelModel):
    success: bool = True
    message: str
    order_id: str


class DisplayOrderResponse(CamelModel):
    success: bool = True
    message: str
    order_id: Optional[str] = None
    display_status: str = "active"


class StatusResponse(CamelModel):
    success: bool = True
    message: str
    order_id: str
    new_status: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(CamelModel):
    status: str = "ok"
    timestamp: str
    active_order: Optional[str] = None
    connected_displays: int = Field(..., ge=0)
    broadcast: dict[str, int] = Field(default_factory=dict)
