# mealplan/api/routers/orders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from mealplan.api.deps import Actor, get_actor, get_order_service
from mealplan.api.errors import http_error
from mealplan.domain.errors import MealPlanError
from mealplan.domain.schemas import CheckoutIn, OrderHistoryGroup, OrderOut, OrderSummaryOut
from mealplan.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    """
    Turns the current cart into a pending order and empties the cart.
    Sending the same idempotency_key again returns the first order.
    """
    try:
        return svc.checkout(actor.user_id, idempotency_key=payload.idempotency_key)
    except MealPlanError as e:
        raise http_error(e)


@router.get("/", response_model=List[OrderOut])
def list_orders(
    status: Optional[str] = Query(None, pattern="^(pending|approved|cancelled)$"),
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_orders(actor.user_id, status)


@router.get("/history", response_model=List[OrderHistoryGroup])
def approved_history(actor: Actor = Depends(get_actor), svc: OrderService = Depends(get_order_service)):
    return svc.approved_history(actor.user_id)


@router.get("/summary", response_model=OrderSummaryOut)
def summary(actor: Actor = Depends(get_actor), svc: OrderService = Depends(get_order_service)):
    return svc.summary(actor.user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    actor: Actor = Depends(get_actor),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.get_order(order_id, actor.user_id)
    except MealPlanError as e:
        raise http_error(e)
