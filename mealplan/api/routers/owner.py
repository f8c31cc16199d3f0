# mealplan/api/routers/owner.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from mealplan.api.deps import Actor, get_approval_service, require_owner
from mealplan.api.errors import http_error
from mealplan.domain.errors import MealPlanError
from mealplan.domain.schemas import DashboardOut, OrderOut, PendingPaymentOut, PlanOut
from mealplan.services.approval_service import ApprovalService

router = APIRouter(prefix="/owner", tags=["owner"])


@router.get("/payments/pending", response_model=List[PendingPaymentOut])
def pending_payments(
    _: Actor = Depends(require_owner),
    svc: ApprovalService = Depends(get_approval_service),
):
    return svc.pending_payments()


@router.post("/customers/{customer_id}/approve-payment", response_model=PlanOut)
def approve_payment(
    customer_id: int,
    _: Actor = Depends(require_owner),
    svc: ApprovalService = Depends(get_approval_service),
):
    """
    Activates (or renews) the customer's plan: 30 meals, 30 days from now.
    """
    try:
        return svc.approve_payment(customer_id)
    except MealPlanError as e:
        raise http_error(e)


@router.get("/orders", response_model=List[OrderOut])
def list_orders(
    status: Optional[str] = Query(None, pattern="^(pending|approved|cancelled)$"),
    limit: Optional[int] = Query(None, gt=0, le=500),
    _: Actor = Depends(require_owner),
    svc: ApprovalService = Depends(get_approval_service),
):
    return svc.list_orders(status, limit)


@router.post("/orders/{order_id}/approve", response_model=OrderOut)
def approve_order(
    order_id: int,
    _: Actor = Depends(require_owner),
    svc: ApprovalService = Depends(get_approval_service),
):
    try:
        return svc.approve_order(order_id)
    except MealPlanError as e:
        raise http_error(e)


@router.post("/orders/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    _: Actor = Depends(require_owner),
    svc: ApprovalService = Depends(get_approval_service),
):
    try:
        return svc.cancel_order(order_id)
    except MealPlanError as e:
        raise http_error(e)


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(
    _: Actor = Depends(require_owner),
    svc: ApprovalService = Depends(get_approval_service),
):
    return svc.dashboard()
