from fastapi import APIRouter, Depends

from ..controller import OrderController
from ..dependencies import get_controller, order_errors
from ..schemas import HistoryEnvelope, OrderEnvelope

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("/history", response_model=HistoryEnvelope)
def list_history(controller: OrderController = Depends(get_controller)) -> HistoryEnvelope:
    return HistoryEnvelope(orders=controller.list_history())


@router.get("/{order_id}", response_model=OrderEnvelope, response_model_exclude={"success"})
def get_history_order(order_id: str, controller: OrderController = Depends(get_controller)) -> OrderEnvelope:
    with order_errors():
        order = controller.get_history(order_id)
    return OrderEnvelope(order=order)
