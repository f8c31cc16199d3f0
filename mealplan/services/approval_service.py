# mealplan/services/approval_service.py
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from mealplan.domain import plan as ledger
from mealplan.repos.customer_repo import CustomerRepo, plan_from_model
from mealplan.repos.order_repo import OrderRepo
from mealplan.services.order_service import OrderService
from mealplan.services.plan_service import PlanService
from mealplan.utils.clock import utcnow


class ApprovalService:
    """
    Owner side: approves payments and orders, cancels orders and builds the
    read-side dashboards. All derived numbers come from ledger.snapshot so
    owner and customer views never disagree.
    """

    def __init__(self, db: Session, plan_service: PlanService, order_service: OrderService):
        self.customers = CustomerRepo(db)
        self.orders = OrderRepo(db)
        self.plan_service = plan_service
        self.order_service = order_service

    # commands
    def approve_payment(self, customer_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        return self.plan_service.approve_payment(customer_id, now)

    def approve_order(self, order_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        return self.order_service.approve(order_id, now)

    def cancel_order(self, order_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        return self.order_service.cancel(order_id, now)

    # queries
    def pending_payments(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or utcnow()
        result = []
        for customer in self.customers.list_pending_payments():
            plan = plan_from_model(customer)
            result.append({
                "customer_id": customer.id,
                "name": customer.name,
                "email": customer.email,
                "status": plan.status(now).value,
                "receipt_ref": plan.receipt_ref,
                "receipt_name": plan.receipt_name,
                "receipt_uploaded_at": plan.receipt_uploaded_at,
            })
        return result

    def list_orders(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.order_service.list_all(status, limit)

    def pending_orders(self) -> List[Dict[str, Any]]:
        return self.list_orders(status="pending")

    def dashboard(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()

        orders_by_user = defaultdict(list)
        for order in self.orders.list_orders():
            orders_by_user[order.user_id].append(order)

        stats = []
        for customer in self.customers.list_customers():
            plan = plan_from_model(customer)
            user_orders = orders_by_user.get(customer.id, [])
            snap = ledger.snapshot(plan, user_orders, now)
            live = [o for o in user_orders if o.status != "cancelled"]

            stats.append({
                "customer_id": customer.id,
                "name": customer.name,
                "email": customer.email,
                "status": snap.status.value,
                "status_label": snap.status_label,
                "total_spent": sum((Decimal(o.total_price) for o in live), Decimal("0")),
                "approved_count": sum(1 for o in live if o.status == "approved"),
                "pending_count": sum(1 for o in live if o.status == "pending"),
                "plan_used_meals": snap.plan_used_meals,
                **ledger.utilization(plan),
                "start_date": plan.start_date,
                "end_date": plan.end_date,
            })

        return {
            "customers": stats,
            "pending_payments": len(self.customers.list_pending_payments()),
            "pending_orders": sum(1 for orders in orders_by_user.values() for o in orders if o.status == "pending"),
        }
