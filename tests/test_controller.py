import threading
from typing import Any

import pytest

from pos_display.broadcast import DISPLAY_MESSAGE, ORDER_UPDATE, STATUS_UPDATE, CallbackSubscriber, Subscriber
from pos_display.controller import OrderController
from pos_display.errors import InternalError, NotFoundError, ValidationError
from pos_display.history import HistoryStore
from pos_display.models import COMPLETED, Order


def test_coffee_scenario_broadcasts_each_step(controller: OrderController, events: list) -> None:
    order = controller.add_item("A", "Coffee", 3.00, quantity=2)
    assert (order["subtotal"], order["tax"], order["total"], order["discount"]) == (6.0, 0.54, 6.54, 0)

    assert controller.apply_discount(1.00)["total"] == 5.54

    order = controller.update_quantity("A", 0)
    assert order["items"] == []
    assert (order["subtotal"], order["tax"], order["total"]) == (0, 0, -1.0)

    controller.cancel_order()
    assert controller.current_order() is None
    assert controller.list_history() == []

    assert [event for event, _ in events] == [ORDER_UPDATE, ORDER_UPDATE, ORDER_UPDATE, DISPLAY_MESSAGE]
    assert events[2][1] == order
    assert events[3][1] == {"type": DISPLAY_MESSAGE, "data": {"message": "clear"}}


def test_published_snapshots_match_committed_state(controller: OrderController) -> None:
    observed: list[bool] = []

    def check(event: str, payload: Any) -> None:
        if event == ORDER_UPDATE:
            observed.append(payload == controller.current_order())

    controller.hub.subscribe(CallbackSubscriber(check))
    controller.add_item("A", "Coffee", 3.0)
    controller.add_item("B", "Bagel", 2.0)
    controller.update_quantity("A", 3)
    controller.apply_discount(0.5)
    assert observed and all(observed)


def test_late_subscriber_receives_replayed_state(controller: OrderController) -> None:
    controller.add_item("A", "Coffee", 3.0)
    controller.add_item("A", "Coffee", 3.0, image="cup.png")
    final = controller.apply_discount(0.25)

    received: list[tuple[str, Any]] = []
    controller.hub.subscribe(CallbackSubscriber(lambda event, payload: received.append((event, payload))))
    assert received == [(ORDER_UPDATE, final)]
    assert received[0][1]["items"][0]["quantity"] == 2


def test_validation_failure_changes_and_publishes_nothing(controller: OrderController, events: list) -> None:
    controller.add_item("A", "Coffee", 3.0)
    events.clear()
    before = controller.current_order()

    with pytest.raises(ValidationError):
        controller.add_item("B", None, 2.0)
    with pytest.raises(NotFoundError):
        controller.update_quantity("missing", 2)

    assert controller.current_order() == before
    assert events == []


def test_mutations_without_order_are_not_found(controller: OrderController) -> None:
    with pytest.raises(NotFoundError):
        controller.remove_item("A")
    with pytest.raises(NotFoundError):
        controller.apply_discount(1.0)
    with pytest.raises(NotFoundError):
        controller.cancel_order()
    with pytest.raises(NotFoundError):
        controller.save_completed_order()


def test_save_completed_order_archives_before_announcing(controller: OrderController) -> None:
    seen: list[tuple[str, bool]] = []

    def check(event: str, payload: Any) -> None:
        if event == ORDER_UPDATE and payload and payload["status"] == COMPLETED:
            seen.append((payload["orderId"], controller.history.contains(payload["orderId"])))

    controller.add_item("A", "Coffee", 3.0)
    controller.hub.subscribe(CallbackSubscriber(check))
    order = controller.save_completed_order(payment_method=None, received_amount=5.0, change=1.73)

    assert seen == [(order["orderId"], True)]
    assert order["paymentMethod"] == "cash"
    assert order["receivedAmount"] == 5.0
    assert order["change"] == 1.73
    assert order["completedAt"] is not None
    assert controller.current_order()["status"] == COMPLETED
    assert controller.get_history(order["orderId"]) == order


def test_completed_order_is_archived_once(controller: OrderController) -> None:
    controller.add_item("A", "Coffee", 3.0)
    controller.save_completed_order()
    with pytest.raises(ValidationError):
        controller.save_completed_order()
    with pytest.raises(ValidationError):
        controller.complete_order()
    assert len(controller.history) == 1


def test_finalize_and_clear_after_save(controller: OrderController, events: list) -> None:
    controller.add_item("A", "Coffee", 3.0)
    order = controller.save_completed_order()
    controller.finalize_and_clear(reason="payment_done")

    assert controller.current_order() is None
    assert controller.get_history(order["orderId"])["status"] == COMPLETED
    assert events[-1] == (DISPLAY_MESSAGE, {"type": DISPLAY_MESSAGE, "data": {"message": "clear", "reason": "payment_done"}})


def test_legacy_completion_clears_after_delay(controller: OrderController, events: list) -> None:
    history_at_clear: list[int] = []

    def check(event: str, payload: Any) -> None:
        if event == DISPLAY_MESSAGE:
            history_at_clear.append(len(controller.history))

    controller.add_item("A", "Coffee", 3.0)
    controller.hub.subscribe(CallbackSubscriber(check))
    order = controller.complete_order(payment_method="card", customer_info={"name": "Ada"})
    order_id = order["orderId"]

    assert order["status"] == COMPLETED
    assert order["customerInfo"] == {"name": "Ada"}
    status_events = [payload for event, payload in events if event == STATUS_UPDATE]
    assert status_events == [
        {
            "type": STATUS_UPDATE,
            "data": {"orderId": order_id, "status": COMPLETED, "message": "Order completed", "estimatedTime": 0},
        }
    ]

    timer = controller.pending_clear
    assert timer is not None
    timer.join(timeout=2)

    assert controller.current_order() is None
    assert controller.pending_clear is None
    assert history_at_clear == [1]
    assert events[-1][0] == DISPLAY_MESSAGE


def test_new_sale_preempts_scheduled_clear(controller: OrderController) -> None:
    controller.add_item("A", "Coffee", 3.0)
    completed = controller.complete_order()
    timer = controller.pending_clear

    fresh = controller.add_item("B", "Bagel", 2.0)
    assert controller.pending_clear is None
    timer.join(timeout=2)

    current = controller.current_order()
    assert current["orderId"] == fresh["orderId"] != completed["orderId"]
    assert current["status"] == "in_progress"


def test_cancel_and_inject_preempt_scheduled_clear(controller: OrderController, events: list) -> None:
    controller.add_item("A", "Coffee", 3.0)
    controller.complete_order()
    timer = controller.pending_clear
    controller.inject_order({"orderId": "EXT-9", "items": []})
    timer.join(timeout=2)
    assert controller.current_order()["orderId"] == "EXT-9"

    controller.cancel_order()
    assert controller.pending_clear is None
    assert [event for event, _ in events].count(DISPLAY_MESSAGE) == 1


def test_inject_order_replaces_active_order(controller: OrderController, events: list) -> None:
    controller.add_item("A", "Coffee", 3.0)
    order = controller.inject_order(
        {"orderId": "EXT-1", "items": [{"id": "T", "name": "Tea", "price": 2.0, "quantity": 1}], "source": "kiosk"}
    )
    assert order["orderId"] == "EXT-1"
    assert order["source"] == "kiosk"
    assert [item["id"] for item in order["items"]] == ["T"]
    assert events[-1] == (ORDER_UPDATE, order)

    with pytest.raises(ValidationError):
        controller.inject_order({"orderId": "EXT-2"})
    assert controller.current_order()["orderId"] == "EXT-1"


def test_status_broadcasts(controller: OrderController, events: list) -> None:
    controller.broadcast_status("ORD-7", "preparing", estimated_time=5)
    controller.broadcast_custom_status("ORD-7", "preparing-cancel")

    assert events == [
        (STATUS_UPDATE, {"type": STATUS_UPDATE, "data": {"orderId": "ORD-7", "status": "preparing", "estimatedTime": 5}}),
        (
            STATUS_UPDATE,
            {
                "type": STATUS_UPDATE,
                "data": {"orderId": "ORD-7", "status": "preparing-cancel", "message": "Custom status broadcasted"},
            },
        ),
    ]
    with pytest.raises(ValidationError, match="status"):
        controller.broadcast_status("ORD-7", None)


def test_failing_display_does_not_fail_mutation(controller: OrderController, events: list) -> None:
    class Flaky(Subscriber):
        def __init__(self) -> None:
            super().__init__()
            self.calls = 0

        def receive(self, event: str, payload: Any) -> None:
            self.calls += 1
            if self.calls > 1:
                raise TimeoutError("display too slow")

    flaky = Flaky()
    controller.hub.subscribe(flaky)
    order = controller.add_item("A", "Coffee", 3.0)

    assert controller.current_order() == order
    assert events[-1] == (ORDER_UPDATE, order)
    assert flaky not in controller.hub


def test_archive_failure_leaves_order_in_progress(controller: OrderController) -> None:
    class FailingHistory(HistoryStore):
        def archive(self, order: Order) -> Order:
            raise OSError("disk full")

    broken = OrderController(history=FailingHistory())
    broken.add_item("A", "Coffee", 3.0)
    with pytest.raises(InternalError):
        broken.save_completed_order()
    assert broken.current_order()["status"] == "in_progress"


def test_concurrent_adds_are_serialised(controller: OrderController) -> None:
    def add_many() -> None:
        for _ in range(25):
            controller.add_item("A", "Coffee", 1.5)

    threads = [threading.Thread(target=add_many) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    order = controller.current_order()
    assert order["items"][0]["quantity"] == 100
    assert order["items"][0]["total"] == 150.0
    assert order["subtotal"] == 150.0


def test_independent_controllers_do_not_share_state() -> None:
    first, second = OrderController(), OrderController()
    first.add_item("A", "Coffee", 3.0)
    assert second.current_order() is None


@pytest.mark.parametrize("status", ["completed", "bogus"])
def test_injected_order_starts_in_progress(controller: OrderController, status: str) -> None:
    order = controller.inject_order(
        {"orderId": "EXT-1", "status": status, "items": [{"id": "T", "name": "Tea", "price": 2.0}]}
    )
    assert order["status"] == "in_progress"
    assert order["completedAt"] is None

    assert controller.remove_item("T")["items"] == []
    assert controller.current_order()["orderId"] == "EXT-1"
