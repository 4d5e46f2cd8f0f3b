"""WebSocket channel for customer displays."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .broadcast import CONNECTION_STATUS, Subscriber, SubscriberClosedError
from .controller import OrderController

logger = logging.getLogger(__name__)

router = APIRouter()

DISPLAY_ACK = "display_ack"


class WebSocketSubscriber(Subscriber):
    """Subscriber buffering events for one WebSocket.

    ``receive`` may be called from any thread and never waits on the network: it
    appends to a bounded FIFO that :meth:`pump` drains on the event loop. A full
    buffer closes the subscriber, which makes the hub drop it.
    """

    def __init__(
        self,
        websocket: WebSocket,
        loop: asyncio.AbstractEventLoop,
        *,
        max_pending: int = 100,
        send_timeout: float = 5.0,
    ) -> None:
        super().__init__()
        self._websocket = websocket
        self._loop = loop
        self._max_pending = max_pending
        self._send_timeout = send_timeout
        self._pending: deque[dict[str, Any]] = deque()
        self._guard = threading.Lock()
        self._wakeup = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def receive(self, event: str, payload: Any) -> None:
        with self._guard:
            if self._closed:
                raise SubscriberClosedError(f"{self!r} is closed")
            backlog = len(self._pending)
            if backlog >= self._max_pending:
                self._closed = True
            else:
                self._pending.append({"event": event, "data": payload})
        self._loop.call_soon_threadsafe(self._wakeup.set)
        if backlog >= self._max_pending:
            raise SubscriberClosedError(f"{self!r} has {backlog} undelivered messages")

    def close(self) -> None:
        with self._guard:
            self._closed = True
            self._pending.clear()

    async def pump(self) -> None:
        """Send buffered events in order until the subscriber is closed."""

        while not self._closed:
            await self._wakeup.wait()
            self._wakeup.clear()
            while (message := self._next_message()) is not None:
                await asyncio.wait_for(self._websocket.send_json(message), timeout=self._send_timeout)

    def _next_message(self) -> Optional[dict[str, Any]]:
        with self._guard:
            if self._closed or not self._pending:
                return None
            return self._pending.popleft()


async def _receive_acks(websocket: WebSocket, subscriber: WebSocketSubscriber) -> None:
    while True:
        try:
            message = await websocket.receive_json()
        except ValueError:
            logger.warning("Ignoring malformed frame from display %s", subscriber.subscriber_id)
            continue
        if isinstance(message, dict) and message.get("event") == DISPLAY_ACK:
            logger.info("Display acknowledgment from %s: %s", subscriber.subscriber_id, message.get("data"))


@router.websocket("/customer-display")
async def customer_display(websocket: WebSocket) -> None:
    controller: OrderController = websocket.app.state.controller
    settings = websocket.app.state.settings

    await websocket.accept()
    subscriber = WebSocketSubscriber(
        websocket,
        asyncio.get_running_loop(),
        max_pending=settings.subscriber_queue_size,
        send_timeout=settings.send_timeout,
    )
    logger.info("Customer display connected: %s", subscriber.subscriber_id)
    subscriber.receive(
        CONNECTION_STATUS,
        {
            "type": CONNECTION_STATUS,
            "data": {
                "status": "connected",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "subscriberId": subscriber.subscriber_id,
            },
        },
    )
    controller.hub.subscribe(subscriber)

    receiver = asyncio.create_task(_receive_acks(websocket, subscriber))
    sender = asyncio.create_task(subscriber.pump())
    try:
        done, _ = await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        controller.hub.unsubscribe(subscriber)
        subscriber.close()
        receiver.cancel()
        sender.cancel()
        await asyncio.gather(receiver, sender, return_exceptions=True)

    for task in done:
        error = task.exception()
        if error is not None and not isinstance(error, WebSocketDisconnect):
            logger.warning("Display %s connection failed: %r", subscriber.subscriber_id, error)
    logger.info("Customer display disconnected: %s", subscriber.subscriber_id)


__all__ = ["WebSocketSubscriber", "router"]
