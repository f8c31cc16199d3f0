# mealplan/services/order_service.py
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from mealplan.data.models.order import OrderModel
from mealplan.data.models.order_item import OrderItemModel
from mealplan.domain import plan as ledger
from mealplan.domain.catalog import get_item
from mealplan.domain.errors import (
    AlreadyApprovedError,
    EmptyCartError,
    OrderNotFoundError,
    OrderNotPendingError,
    PermissionDeniedError,
    StoreUnavailableError,
)
from mealplan.domain.pricing import price
from mealplan.repos.order_repo import OrderRepo
from mealplan.services.cart_service import CartService
from mealplan.services.notification_service import NotificationService
from mealplan.services.plan_service import PlanService
from mealplan.utils.clock import as_utc, utcnow
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)


def order_to_dict(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "is_extra_order": order.is_extra_order,
        "items": [
            {
                "item_id": i.item_id,
                "name": i.name,
                "quantity": i.quantity,
                "unit_price": i.unit_price,
            }
            for i in order.items
        ],
        "total_qty": order.total_qty,
        "total_price": order.total_price,
        "address": order.address,
        "created_at": order.created_at,
        "approved_at": order.approved_at,
        "cancelled_at": order.cancelled_at,
    }


class OrderService:
    """
    Order lifecycle: pending -> approved | cancelled, nothing after that.

    Status changes are compare-and-swap updates on the status column, so
    of two concurrent approvals exactly one wins.
    """

    def __init__(
        self,
        db: Session,
        plan_service: PlanService,
        cart_service: CartService,
        notification_service: Optional[NotificationService] = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.plan_service = plan_service
        self.cart_service = cart_service
        self.notification_service = notification_service or plan_service.notification_service

    # commands
    def checkout(
        self,
        user_id: int,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or utcnow()
        customer = self.plan_service.require_customer(user_id)

        if idempotency_key:
            existing = self.repo.get_by_idempotency_key(user_id, idempotency_key)
            if existing:
                logger.info(f"Checkout replay for user {user_id}, returning order {existing.id}")
                return order_to_dict(existing)

        cart_row = self.cart_service.open_cart(user_id, now)
        cart = self.cart_service.load_domain_cart(cart_row)
        if cart.is_empty():
            raise EmptyCartError()

        # price snapshot from the catalog, later menu changes never touch this order
        lines = [(get_item(line.item_id), line.quantity) for line in cart.lines()]
        total_qty = cart.total_quantity()

        # decided against live capacity, the per-add checks are not re-run
        snap = self.plan_service.snapshot_for(customer, now)
        is_extra = ledger.is_extra_order(snap, total_qty)

        order = OrderModel(
            user_id=user_id,
            status="pending",
            is_extra_order=is_extra,
            total_qty=total_qty,
            total_price=price(lines, is_extra),
            address=customer.address,
            idempotency_key=idempotency_key,
            created_at=now,
            items=[
                OrderItemModel(
                    item_id=item.id,
                    name=item.name,
                    quantity=qty,
                    unit_price=item.unit_price,
                )
                for item, qty in lines
            ],
        )

        try:
            self.repo.add_order(order)
            self.cart_service.mark_checked_out(cart_row)
            self.repo.commit()
        except IntegrityError:
            # same idempotency key committed by a parallel request
            self.repo.rollback()
            existing = self.repo.get_by_idempotency_key(user_id, idempotency_key) if idempotency_key else None
            if existing is None:
                raise
            return order_to_dict(existing)
        except OperationalError as e:
            self.repo.rollback()
            logger.error(f"Record store unavailable during checkout of user {user_id}: {e}")
            raise StoreUnavailableError() from e
        except Exception:
            self.repo.rollback()
            raise

        logger.info(
            f"Order {order.id} placed by user {user_id}: qty={total_qty} "
            f"total={order.total_price} extra={is_extra}"
        )
        return order_to_dict(order)

    def approve(self, order_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFoundError()

        user_id = order.user_id
        is_extra = order.is_extra_order
        qty = sum(i.quantity for i in order.items)

        def unit():
            rowcount = self.repo.transition_status(order_id, "pending", "approved", approved_at=now)
            if rowcount == 0:
                self._raise_not_pending(order_id)
            if not is_extra:
                self.plan_service.apply_in_transaction(user_id, lambda p: ledger.decrement(p, qty))

        self.plan_service.run_ledger_unit(user_id, unit)

        logger.info(f"Order {order_id} approved (extra={is_extra}, qty={qty})")
        self.notification_service.notify_order_approved(user_id, order_id)
        return order_to_dict(self.repo.get_order(order_id, fresh=True))

    def cancel(self, order_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        try:
            rowcount = self.repo.transition_status(order_id, "pending", "cancelled", cancelled_at=now)
            if rowcount == 0:
                self.repo.rollback()
                self._raise_not_pending(order_id)
            self.repo.commit()
        except OperationalError as e:
            self.repo.rollback()
            logger.error(f"Record store unavailable while cancelling order {order_id}: {e}")
            raise StoreUnavailableError() from e

        logger.info(f"Order {order_id} cancelled")
        return order_to_dict(self.repo.get_order(order_id, fresh=True))

    def _raise_not_pending(self, order_id: int):
        current = self.repo.get_order(order_id, fresh=True)
        if current is None:
            raise OrderNotFoundError()
        if current.status == "approved":
            raise AlreadyApprovedError()
        raise OrderNotPendingError(f"Order {order_id} is {current.status}", status=current.status)

    # queries
    def get_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise OrderNotFoundError()

        if order.user_id != user_id:
            raise PermissionDeniedError("No access to this order")

        return order_to_dict(order)

    def list_orders(self, user_id: int, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return [order_to_dict(o) for o in self.repo.list_by_user(user_id, status)]

    def list_all(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return [order_to_dict(o) for o in self.repo.list_orders(status, limit)]

    def approved_history(self, user_id: int) -> List[Dict[str, Any]]:
        """Approved orders grouped by month (YYYY-MM), newest first."""
        groups: "OrderedDict[str, list]" = OrderedDict()
        for order in self.repo.list_by_user(user_id, "approved"):
            key = as_utc(order.created_at).strftime("%Y-%m")
            groups.setdefault(key, []).append(order_to_dict(order))
        return [{"month": month, "orders": orders} for month, orders in groups.items()]

    def summary(self, user_id: int) -> Dict[str, Any]:
        orders = [o for o in self.repo.list_by_user(user_id) if o.status != "cancelled"]
        return {
            "total_orders": len(orders),
            "total_expense": sum((Decimal(o.total_price) for o in orders), Decimal("0")),
        }
