# mealplan/api/deps.py
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from mealplan.data.database import get_db
from mealplan.services.approval_service import ApprovalService
from mealplan.services.cart_service import CartService
from mealplan.services.lock_service import LockService
from mealplan.services.notification_service import NotificationService
from mealplan.services.order_service import OrderService
from mealplan.services.plan_service import PlanService
from mealplan.services.receipt_client import ReceiptStorageClient


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str

    @property
    def is_owner(self) -> bool:
        return self.role == "owner"


def get_actor(
    x_user_id: int = Header(..., gt=0),
    x_role: str = Header("customer", pattern="^(customer|owner)$"),
) -> Actor:
    # identity comes from the session provider in front of us and is trusted
    return Actor(user_id=x_user_id, role=x_role)


def require_owner(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_owner:
        raise HTTPException(status_code=403, detail={"code": "permission_denied", "message": "Owner only"})
    return actor


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService()


@lru_cache
def get_receipt_client() -> ReceiptStorageClient:
    return ReceiptStorageClient()


def get_plan_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    receipt_client: ReceiptStorageClient = Depends(get_receipt_client),
    notification_service: NotificationService = Depends(get_notification_service),
) -> PlanService:
    return PlanService(
        db=db,
        lock_service=lock_service,
        receipt_client=receipt_client,
        notification_service=notification_service,
    )


def get_cart_service(
    db: Session = Depends(get_db),
    plan_service: PlanService = Depends(get_plan_service),
) -> CartService:
    return CartService(db=db, plan_service=plan_service)


def get_order_service(
    db: Session = Depends(get_db),
    plan_service: PlanService = Depends(get_plan_service),
    cart_service: CartService = Depends(get_cart_service),
) -> OrderService:
    return OrderService(db=db, plan_service=plan_service, cart_service=cart_service)


def get_approval_service(
    db: Session = Depends(get_db),
    plan_service: PlanService = Depends(get_plan_service),
    order_service: OrderService = Depends(get_order_service),
) -> ApprovalService:
    return ApprovalService(db=db, plan_service=plan_service, order_service=order_service)
