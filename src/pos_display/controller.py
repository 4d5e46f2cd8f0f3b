"""Order state machine coordinating the model, history and display hub."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from .broadcast import DISPLAY_MESSAGE, ORDER_UPDATE, STATUS_UPDATE, BroadcastHub, display_message, status_update
from .config import TAX_RATE, Settings
from .errors import InternalError, NotFoundError, ValidationError
from .history import HistoryStore
from .models import COMPLETED, ItemId, Order, OrderModel

logger = logging.getLogger(__name__)

DEFAULT_CLEAR_DELAY = 3.0


class OrderController:
    """Owns the active order and serialises every transition on it.

    Each operation runs validate, mutate, recompute, archive and publish while
    holding one re-entrant lock, so two requests never interleave and the hub
    only ever broadcasts committed state.
    """

    def __init__(
        self,
        *,
        model: Optional[OrderModel] = None,
        history: Optional[HistoryStore] = None,
        hub: Optional[BroadcastHub] = None,
        tax_rate: float = TAX_RATE,
        clear_delay: float = DEFAULT_CLEAR_DELAY,
    ) -> None:
        self.model = model if model is not None else OrderModel(tax_rate)
        self.history = history if history is not None else HistoryStore()
        self.hub = hub if hub is not None else BroadcastHub()
        if self.hub.snapshot_provider is None:
            self.hub.snapshot_provider = self.model.snapshot
        self.clear_delay = clear_delay
        self._lock = threading.RLock()
        self._pending_clear: Optional[threading.Timer] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrderController":
        return cls(tax_rate=settings.tax_rate, clear_delay=settings.clear_delay)

    @property
    def pending_clear(self) -> Optional[threading.Timer]:
        """Timer of the scheduled post-completion clear, if one is pending."""

        return self._pending_clear

    def current_order(self) -> Optional[dict[str, Any]]:
        return self.model.snapshot()

    # -- item mutations -------------------------------------------------

    def add_item(
        self,
        item_id: Optional[ItemId],
        name: Optional[str],
        price: Optional[float],
        quantity: Optional[int] = 1,
        category: Optional[str] = None,
        image: Optional[str] = None,
    ) -> dict[str, Any]:
        with self._lock:
            starts_new = self.model.status in (None, COMPLETED)
            order = self.model.add_item(item_id, name, price, quantity, category, image)
            if starts_new:
                self._cancel_pending_clear()
                logger.info("Started order %s", order.order_id)
            return self._announce_order()

    def remove_item(self, item_id: Optional[ItemId]) -> dict[str, Any]:
        with self._lock:
            self.model.remove_item(item_id)
            return self._announce_order()

    def update_quantity(self, item_id: Optional[ItemId], quantity: Optional[int]) -> dict[str, Any]:
        with self._lock:
            self.model.update_quantity(item_id, quantity)
            return self._announce_order()

    def apply_discount(self, amount: Optional[float]) -> dict[str, Any]:
        with self._lock:
            self.model.apply_discount(amount)
            return self._announce_order()

    # -- completion -----------------------------------------------------

    def save_completed_order(
        self,
        payment_method: Optional[str] = None,
        received_amount: Optional[float] = None,
        change: Optional[float] = None,
    ) -> dict[str, Any]:
        """Complete and archive the order; the client clears the display afterwards."""

        with self._lock:
            completed = self.model.prepare_completion(
                payment_method, received_amount=received_amount, change=change
            )
            self._archive(completed)
            return self._announce_order()

    def complete_order(
        self, payment_method: Optional[str] = None, customer_info: Any = None
    ) -> dict[str, Any]:
        """Complete and archive the order, then clear it after ``clear_delay`` seconds."""

        with self._lock:
            completed = self.model.prepare_completion(payment_method, customer_info=customer_info)
            self._archive(completed)
            self._publish(
                STATUS_UPDATE,
                status_update(completed.order_id, COMPLETED, message="Order completed", estimatedTime=0),
            )
            self._schedule_clear(completed.order_id)
            return completed.to_wire()

    # -- clearing -------------------------------------------------------

    def finalize_and_clear(self, reason: Optional[str] = None) -> None:
        with self._lock:
            self._cancel_pending_clear()
            self._clear(reason)

    def cancel_order(self) -> None:
        with self._lock:
            if self.model.status is None:
                raise NotFoundError("No active order")
            self._cancel_pending_clear()
            self._clear(None)

    def inject_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Replace the active order wholesale with one built by an external system."""

        with self._lock:
            order = self.model.load(payload)
            self._cancel_pending_clear()
            logger.info("Received external order %s", order.order_id)
            return self._announce_order()

    # -- broadcast only -------------------------------------------------

    def broadcast_status(
        self,
        order_id: str,
        status: Optional[str],
        estimated_time: Optional[float] = None,
        message: Optional[str] = None,
    ) -> None:
        if not status:
            raise ValidationError("Missing required field: status")
        with self._lock:
            self._publish(
                STATUS_UPDATE,
                status_update(order_id, status, estimatedTime=estimated_time, message=message),
            )

    def broadcast_custom_status(
        self, order_id: str, status: Optional[str], message: Optional[str] = None
    ) -> None:
        self.broadcast_status(order_id, status, message=message or "Custom status broadcasted")

    # -- history --------------------------------------------------------

    def list_history(self) -> list[dict[str, Any]]:
        return [record.to_wire() for record in self.history.list_orders()]

    def get_history(self, order_id: str) -> dict[str, Any]:
        return self.history.get(order_id).to_wire()

    def close(self) -> None:
        with self._lock:
            self._cancel_pending_clear()

    # -- internals ------------------------------------------------------

    def _archive(self, completed: Order) -> None:
        try:
            self.history.archive(completed)
        except Exception as exc:
            raise InternalError(f"Failed to archive order {completed.order_id}") from exc
        self.model.commit(completed)
        logger.info("Order %s completed and archived", completed.order_id)

    def _announce_order(self) -> dict[str, Any]:
        snapshot = self.model.snapshot()
        self._publish(ORDER_UPDATE, snapshot)
        return snapshot

    def _publish(self, event: str, payload: Any) -> None:
        # Delivery is best-effort; the committed state stands either way.
        try:
            self.hub.publish(event, payload)
        except Exception:
            logger.exception("Broadcast of %s failed", event)

    def _clear(self, reason: Optional[str]) -> None:
        previous = self.model.clear()
        if previous is not None:
            logger.info("Cleared order %s", previous.order_id)
        self._publish(DISPLAY_MESSAGE, display_message(reason=reason))

    def _schedule_clear(self, order_id: str) -> None:
        self._cancel_pending_clear()
        timer = threading.Timer(self.clear_delay, self._run_scheduled_clear, args=(order_id,))
        timer.daemon = True
        self._pending_clear = timer
        timer.start()

    def _cancel_pending_clear(self) -> None:
        timer, self._pending_clear = self._pending_clear, None
        if timer is not None:
            timer.cancel()

    def _run_scheduled_clear(self, order_id: str) -> None:
        with self._lock:
            # The timer runs in its own thread; anything else means it was pre-empted.
            if self._pending_clear is not threading.current_thread():
                return
            self._pending_clear = None
            current = self.model.order
            if current is None or current.order_id != order_id or current.status != COMPLETED:
                return
            self._clear(None)


__all__ = ["DEFAULT_CLEAR_DELAY", "OrderController"]
