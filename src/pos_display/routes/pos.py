from typing import Optional

from fastapi import APIRouter, Depends

from ..controller import OrderController
from ..dependencies import get_controller, order_errors
from ..schemas import (
    AddItemRequest,
    ApplyDiscountRequest,
    CompleteOrderRequest,
    MessageResponse,
    OrderEnvelope,
    RemoveItemRequest,
    SaveCompletedOrderRequest,
    SavedOrderResponse,
    UpdateQuantityRequest,
)

router = APIRouter(prefix="/api/pos", tags=["pos"])


@router.post("/add-item", response_model=OrderEnvelope)
def add_item(payload: AddItemRequest, controller: OrderController = Depends(get_controller)) -> OrderEnvelope:
    with order_errors():
        order = controller.add_item(
            payload.id,
            payload.name,
            payload.price,
            quantity=payload.quantity,
            category=payload.category,
            image=payload.image,
        )
    return OrderEnvelope(order=order)


@router.post("/remove-item", response_model=OrderEnvelope)
def remove_item(
    payload: Optional[RemoveItemRequest] = None, controller: OrderController = Depends(get_controller)
) -> OrderEnvelope:
    payload = payload or RemoveItemRequest()
    with order_errors():
        order = controller.remove_item(payload.id)
    return OrderEnvelope(order=order)


@router.post("/update-quantity", response_model=OrderEnvelope)
def update_quantity(
    payload: Optional[UpdateQuantityRequest] = None, controller: OrderController = Depends(get_controller)
) -> OrderEnvelope:
    payload = payload or UpdateQuantityRequest()
    with order_errors():
        order = controller.update_quantity(payload.id, payload.quantity)
    return OrderEnvelope(order=order)


@router.post("/apply-discount", response_model=OrderEnvelope)
def apply_discount(
    payload: Optional[ApplyDiscountRequest] = None, controller: OrderController = Depends(get_controller)
) -> OrderEnvelope:
    payload = payload or ApplyDiscountRequest()
    with order_errors():
        order = controller.apply_discount(payload.discount)
    return OrderEnvelope(order=order)


@router.post("/save-completed-order", response_model=SavedOrderResponse)
def save_completed_order(
    payload: Optional[SaveCompletedOrderRequest] = None, controller: OrderController = Depends(get_controller)
) -> SavedOrderResponse:
    payload = payload or SaveCompletedOrderRequest()
    with order_errors():
        order = controller.save_completed_order(
            payment_method=payload.payment_method,
            received_amount=payload.received_amount,
            change=payload.change,
        )
    return SavedOrderResponse(message="Order saved to history", order_id=order["orderId"])


@router.post("/complete-order", response_model=OrderEnvelope)
def complete_order(
    payload: Optional[CompleteOrderRequest] = None, controller: OrderController = Depends(get_controller)
) -> OrderEnvelope:
    payload = payload or CompleteOrderRequest()
    with order_errors():
        order = controller.complete_order(
            payment_method=payload.payment_method, customer_info=payload.customer_info
        )
    return OrderEnvelope(order=order)


@router.post("/cancel-order", response_model=MessageResponse)
def cancel_order(controller: OrderController = Depends(get_controller)) -> MessageResponse:
    with order_errors():
        controller.cancel_order()
    return MessageResponse(message="Order cancelled")


@router.get("/current-order", response_model=OrderEnvelope, response_model_exclude={"success"})
def current_order(controller: OrderController = Depends(get_controller)) -> OrderEnvelope:
    return OrderEnvelope(order=controller.current_order())
