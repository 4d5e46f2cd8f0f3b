"""Append-only archive of completed orders."""

from __future__ import annotations

import threading

from .errors import NotFoundError
from .models import Order


class HistoryStore:
    """Keeps deep copies of completed orders in completion order."""

    def __init__(self) -> None:
        self._records: list[Order] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def archive(self, order: Order) -> Order:
        record = order.model_copy(deep=True)
        with self._lock:
            self._records.append(record)
        return record.model_copy(deep=True)

    def get(self, order_id: str) -> Order:
        with self._lock:
            record = next((entry for entry in self._records if entry.order_id == order_id), None)
        if record is None:
            raise NotFoundError("Order not found")
        return record.model_copy(deep=True)

    def contains(self, order_id: str) -> bool:
        with self._lock:
            return any(entry.order_id == order_id for entry in self._records)

    def list_orders(self) -> list[Order]:
        with self._lock:
            return [entry.model_copy(deep=True) for entry in self._records]


__all__ = ["HistoryStore"]
