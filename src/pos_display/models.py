"""In-memory order representation and totals computation."""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .config import TAX_RATE
from .errors import NotFoundError, ValidationError

IN_PROGRESS = "in_progress"
COMPLETED = "completed"
DEFAULT_CATEGORY = "General"
DEFAULT_PAYMENT_METHOD = "cash"

_CENT = Decimal("0.01")
_TOTAL_FIELDS = frozenset({"subtotal", "tax", "total"})
_COMPLETION_FIELDS = ("status", "completedAt", "completed_at")

ItemId = Union[int, str]
OrderStatus = Literal["in_progress", "completed"]


def round2(value: float) -> float:
    """Round half-up to two decimal places."""

    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def new_order_id() -> str:
    """Return an order id built from the current time and a random suffix."""

    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class LineItem(_WireModel):
    id: ItemId
    name: str
    price: float = Field(..., ge=0)
    quantity: int = 1
    total: Optional[float] = None
    category: str = DEFAULT_CATEGORY
    image: Optional[str] = None

    @model_validator(mode="after")
    def _fill_total(self) -> "LineItem":
        if self.total is None:
            self.total = self.price * self.quantity
        return self


class Order(_WireModel):
    order_id: str = Field(default_factory=new_order_id)
    items: list[LineItem] = Field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    discount: float = 0.0
    total: float = 0.0
    payment_method: Optional[str] = None
    received_amount: Optional[float] = None
    change: Optional[float] = None
    customer_info: Optional[Any] = None
    status: OrderStatus = IN_PROGRESS
    timestamp: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    def find_item(self, item_id: ItemId) -> Optional[LineItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def recompute_totals(self, tax_rate: float = TAX_RATE) -> None:
        """Derive subtotal, tax and total from the items and discount."""

        self.subtotal = round2(sum(item.total or 0.0 for item in self.items))
        self.tax = round2(self.subtotal * tax_rate)
        self.total = round2(self.subtotal + self.tax - (self.discount or 0.0))

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class OrderModel:
    """Holder of the single active order.

    Every mutation edits a deep copy and commits it by swapping the reference, so
    :meth:`snapshot` never observes a half-applied change and a failed mutation
    leaves the committed order untouched.
    """

    def __init__(self, tax_rate: float = TAX_RATE) -> None:
        self.tax_rate = tax_rate
        self._order: Optional[Order] = None

    @property
    def order(self) -> Optional[Order]:
        current = self._order
        return current.model_copy(deep=True) if current is not None else None

    @property
    def status(self) -> Optional[str]:
        current = self._order
        return current.status if current is not None else None

    def snapshot(self) -> Optional[dict[str, Any]]:
        """Return the committed order in wire format, or ``None`` when absent."""

        current = self._order
        return current.to_wire() if current is not None else None

    def add_item(
        self,
        item_id: Optional[ItemId],
        name: Optional[str],
        price: Optional[float],
        quantity: Optional[int] = 1,
        category: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Order:
        if item_id is None or item_id == "" or not name or price is None:
            raise ValidationError("Missing required fields: id, name, price")
        if price < 0:
            raise ValidationError("Price must not be negative")
        quantity = 1 if quantity is None else quantity
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        current = self._order
        if current is None or current.status == COMPLETED:
            draft = Order()
        else:
            draft = current.model_copy(deep=True)

        existing = draft.find_item(item_id)
        if existing is not None:
            existing.quantity += quantity
            existing.total = existing.price * existing.quantity
            if image:
                existing.image = image
        else:
            draft.items.append(
                LineItem(
                    id=item_id,
                    name=name,
                    price=price,
                    quantity=quantity,
                    category=category or DEFAULT_CATEGORY,
                    image=image or None,
                )
            )
        return self._commit(draft)

    def remove_item(self, item_id: Optional[ItemId]) -> Order:
        if item_id is None or item_id == "":
            raise ValidationError("Missing required field: id")
        draft = self._editable()
        draft.items = [item for item in draft.items if item.id != item_id]
        return self._commit(draft)

    def update_quantity(self, item_id: Optional[ItemId], quantity: Optional[int]) -> Order:
        if item_id is None or quantity is None:
            raise ValidationError("Missing required fields: id, quantity")
        draft = self._editable()
        item = draft.find_item(item_id)
        if item is None:
            raise NotFoundError("Item not found")
        if quantity <= 0:
            draft.items = [entry for entry in draft.items if entry.id != item_id]
        else:
            item.quantity = quantity
            item.total = item.price * quantity
        return self._commit(draft)

    def apply_discount(self, amount: Optional[float]) -> Order:
        # Over-discounting is allowed and may drive the total negative.
        draft = self._editable()
        draft.discount = amount or 0.0
        return self._commit(draft)

    def recompute_totals(self) -> Optional[Order]:
        current = self._order
        if current is None:
            return None
        return self._commit(current.model_copy(deep=True))

    def prepare_completion(self, payment_method: Optional[str], **details: Any) -> Order:
        """Return a completed copy of the active order without committing it."""

        draft = self._editable()
        draft.payment_method = payment_method or DEFAULT_PAYMENT_METHOD
        for key, value in details.items():
            setattr(draft, key, value)
        draft.status = COMPLETED
        draft.completed_at = _utcnow()
        return draft

    def commit(self, order: Order) -> Order:
        """Install *order* as the active order as-is."""

        self._order = order
        return order.model_copy(deep=True)

    def load(self, payload: dict[str, Any]) -> Order:
        """Replace the active order with an externally built one.

        The loaded order is always in progress; a status or completion time in
        the payload is discarded.
        """

        if not isinstance(payload.get("items"), list):
            raise ValidationError("Invalid order data: missing required field: items")
        fields = {key: value for key, value in payload.items() if key not in _COMPLETION_FIELDS}
        try:
            order = Order.model_validate(fields)
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ValidationError(f"Invalid order data: {location}: {first['msg']}") from exc
        if not _TOTAL_FIELDS & order.model_fields_set:
            order.recompute_totals(self.tax_rate)
        return self.commit(order)

    def clear(self) -> Optional[Order]:
        previous, self._order = self._order, None
        return previous

    def _editable(self) -> Order:
        current = self._order
        if current is None:
            raise NotFoundError("No active order")
        if current.status == COMPLETED:
            raise ValidationError("Order already completed")
        return current.model_copy(deep=True)

    def _commit(self, draft: Order) -> Order:
        draft.recompute_totals(self.tax_rate)
        return self.commit(draft)


__all__ = [
    "COMPLETED",
    "DEFAULT_CATEGORY",
    "DEFAULT_PAYMENT_METHOD",
    "IN_PROGRESS",
    "ItemId",
    "LineItem",
    "Order",
    "OrderModel",
    "OrderStatus",
    "new_order_id",
    "round2",
]
