from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from ..controller import OrderController
from ..dependencies import get_controller, order_errors
from ..schemas import (
    ClearRequest,
    CustomStatusRequest,
    DisplayOrderResponse,
    MessageResponse,
    OrderEnvelope,
    StatusResponse,
    StatusUpdateRequest,
)

router = APIRouter(prefix="/api/customer-display", tags=["customer-display"])


@router.post("/order", response_model=DisplayOrderResponse)
def push_order(
    payload: dict[str, Any] = Body(...), controller: OrderController = Depends(get_controller)
) -> DisplayOrderResponse:
    with order_errors():
        order = controller.inject_order(payload)
    return DisplayOrderResponse(
        message="Order sent to customer display successfully", order_id=order["orderId"]
    )


@router.put("/order/{order_id}/status", response_model=StatusResponse)
def update_status(
    order_id: str, payload: StatusUpdateRequest, controller: OrderController = Depends(get_controller)
) -> StatusResponse:
    with order_errors():
        controller.broadcast_status(
            order_id, payload.status, estimated_time=payload.estimated_time, message=payload.message
        )
    return StatusResponse(
        message="Order status updated successfully", order_id=order_id, new_status=payload.status
    )


@router.put("/order/{order_id}/custom-status", response_model=StatusResponse)
def update_custom_status(
    order_id: str, payload: CustomStatusRequest, controller: OrderController = Depends(get_controller)
) -> StatusResponse:
    with order_errors():
        controller.broadcast_custom_status(order_id, payload.status, message=payload.message)
    return StatusResponse(
        message="Custom status broadcasted successfully", order_id=order_id, new_status=payload.status
    )


@router.post("/clear", response_model=MessageResponse)
def clear_display(
    payload: Optional[ClearRequest] = None, controller: OrderController = Depends(get_controller)
) -> MessageResponse:
    controller.finalize_and_clear(reason=payload.reason if payload else None)
    return MessageResponse(message="Customer display cleared successfully")


@router.get("/current", response_model=OrderEnvelope, response_model_exclude={"success"})
def current_display(controller: OrderController = Depends(get_controller)) -> OrderEnvelope:
    return OrderEnvelope(order=controller.current_order())
