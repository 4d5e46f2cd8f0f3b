"""Fan-out of named events to connected display subscribers."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

CONNECTION_STATUS = "connection_status"
ORDER_UPDATE = "orderUpdate"
STATUS_UPDATE = "status_update"
DISPLAY_MESSAGE = "display_message"

SnapshotProvider = Callable[[], Optional[dict[str, Any]]]


def display_message(message: str = "clear", reason: Optional[str] = None) -> dict[str, Any]:
    data: dict[str, Any] = {"message": message}
    if reason is not None:
        data["reason"] = reason
    return {"type": DISPLAY_MESSAGE, "data": data}


def status_update(order_id: str, status: str, **details: Any) -> dict[str, Any]:
    data: dict[str, Any] = {"orderId": order_id, "status": status}
    data.update({key: value for key, value in details.items() if value is not None})
    return {"type": STATUS_UPDATE, "data": data}


class SubscriberClosedError(RuntimeError):
    """Raised by a subscriber that can no longer accept events."""


class Subscriber:
    """A connected display. Implementations must not block in :meth:`receive`."""

    def __init__(self, subscriber_id: Optional[str] = None) -> None:
        self.subscriber_id = subscriber_id or uuid.uuid4().hex

    def receive(self, event: str, payload: Any) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.subscriber_id}>"


class CallbackSubscriber(Subscriber):
    """Subscriber forwarding every event to a plain callable."""

    def __init__(self, callback: Callable[[str, Any], None], subscriber_id: Optional[str] = None) -> None:
        super().__init__(subscriber_id)
        self._callback = callback

    def receive(self, event: str, payload: Any) -> None:
        self._callback(event, payload)


@dataclass(slots=True)
class HubStats:
    published: int = 0
    subscribed: int = 0
    unsubscribed: int = 0
    dropped: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class BroadcastHub:
    """Thread-safe registry of subscribers keyed by id.

    Publishes are serialised by the registry lock, so every subscriber sees them
    in issue order. A subscriber whose ``receive`` raises is dropped and the
    remaining subscribers still get the event.
    """

    def __init__(self, snapshot_provider: Optional[SnapshotProvider] = None) -> None:
        self._subscribers: dict[str, Subscriber] = {}
        self._lock = threading.Lock()
        self.snapshot_provider = snapshot_provider
        self.stats = HubStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __contains__(self, subscriber: object) -> bool:
        if not isinstance(subscriber, Subscriber):
            return False
        with self._lock:
            return subscriber.subscriber_id in self._subscribers

    def subscribe(self, subscriber: Subscriber) -> bool:
        """Register *subscriber* after sending it the current order state.

        Returns ``False`` when the catch-up delivery fails, in which case the
        subscriber is not registered.
        """

        with self._lock:
            snapshot = self.snapshot_provider() if self.snapshot_provider else None
            try:
                if snapshot is not None:
                    subscriber.receive(ORDER_UPDATE, snapshot)
                else:
                    subscriber.receive(DISPLAY_MESSAGE, display_message(reason="no_active_order"))
            except Exception:
                logger.exception("Initial sync to %r failed; not registering", subscriber)
                self.stats.dropped += 1
                return False
            self._subscribers[subscriber.subscriber_id] = subscriber
            self.stats.subscribed += 1
            count = len(self._subscribers)
        logger.info("Display %s subscribed (%d connected)", subscriber.subscriber_id, count)
        return True

    def unsubscribe(self, subscriber: Subscriber) -> bool:
        with self._lock:
            removed = self._subscribers.pop(subscriber.subscriber_id, None) is not None
            if removed:
                self.stats.unsubscribed += 1
            count = len(self._subscribers)
        if removed:
            logger.info("Display %s unsubscribed (%d connected)", subscriber.subscriber_id, count)
        return removed

    def publish(self, event: str, payload: Any) -> int:
        """Deliver *payload* to every registered subscriber; return the delivery count."""

        with self._lock:
            targets = list(self._subscribers.values())
            logger.info("Broadcasting %s to %d display(s)", event, len(targets))
            delivered = 0
            failed: list[Subscriber] = []
            for subscriber in targets:
                try:
                    subscriber.receive(event, payload)
                except Exception:
                    logger.warning("Dropping %r after failed %s delivery", subscriber, event, exc_info=True)
                    failed.append(subscriber)
                else:
                    delivered += 1
            for subscriber in failed:
                self._subscribers.pop(subscriber.subscriber_id, None)
            self.stats.dropped += len(failed)
            self.stats.published += 1
        return delivered


__all__ = [
    "BroadcastHub",
    "CONNECTION_STATUS",
    "CallbackSubscriber",
    "DISPLAY_MESSAGE",
    "HubStats",
    "ORDER_UPDATE",
    "STATUS_UPDATE",
    "Subscriber",
    "SubscriberClosedError",
    "display_message",
    "status_update",
]
