# mealplan/domain/plan.py
"""
Plan ledger: the subscription state machine and the derived metrics every
consumer (cart gating, checkout, dashboards) reads.

Only four fields are stored that matter for status (paid, payment_submitted,
start/end dates); the status itself is always derived here.
"""
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional

from mealplan.domain.constants import PLAN_CAPACITY, PLAN_PERIOD_DAYS, PER_ITEM_MAX
from mealplan.domain.errors import CapacityReason, InvalidPlanTransitionError
from mealplan.utils.clock import as_utc


class PlanStatus(str, Enum):
    INACTIVE = "inactive"
    PAYMENT_SUBMITTED = "payment_submitted"
    ACTIVE = "active"
    EXPIRED = "expired"


STATUS_LABELS = {
    PlanStatus.INACTIVE: "No plan",
    PlanStatus.PAYMENT_SUBMITTED: "Payment submitted",
    PlanStatus.ACTIVE: "Active",
    PlanStatus.EXPIRED: "Expired",
}


@dataclass
class Plan:
    paid: bool = False
    payment_submitted: bool = False
    total_meals: int = PLAN_CAPACITY
    meals_remaining: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    receipt_ref: Optional[str] = None
    receipt_name: Optional[str] = None
    receipt_uploaded_at: Optional[datetime] = None
    payment_approved_at: Optional[datetime] = None
    version: int = 1

    def status(self, now: datetime) -> PlanStatus:
        if self.paid and self.end_date is not None:
            if as_utc(self.end_date) >= as_utc(now):
                return PlanStatus.ACTIVE
            return PlanStatus.EXPIRED
        if self.payment_submitted:
            return PlanStatus.PAYMENT_SUBMITTED
        return PlanStatus.INACTIVE

    def is_active(self, now: datetime) -> bool:
        return self.status(now) is PlanStatus.ACTIVE

    @property
    def renewal_pending(self) -> bool:
        # only reachable when renewal does not revoke the running plan
        return self.paid and self.payment_submitted


# --- transitions ----------------------------------------------------------------

def check_receipt_allowed(plan: Plan, now: datetime) -> None:
    status = plan.status(now)
    if status is PlanStatus.ACTIVE and not plan.payment_submitted:
        raise InvalidPlanTransitionError(
            "Plan is already active; request a renewal before submitting a new receipt",
            status=status.value,
        )


def submit_receipt(plan: Plan, receipt_ref: str, receipt_name: Optional[str], now: datetime) -> Plan:
    check_receipt_allowed(plan, now)
    return replace(
        plan,
        payment_submitted=True,
        receipt_ref=receipt_ref,
        receipt_name=receipt_name,
        receipt_uploaded_at=now,
    )


def approve_payment(plan: Plan, now: datetime) -> Plan:
    """
    Activate (or renew) the plan: full capacity and a fresh 30-day window.

    Re-approving an active plan re-issues the window and drops whatever
    capacity was left, so callers only use this when activating or renewing.
    """
    return replace(
        plan,
        paid=True,
        payment_submitted=False,
        total_meals=PLAN_CAPACITY,
        meals_remaining=PLAN_CAPACITY,
        start_date=now,
        end_date=now + timedelta(days=PLAN_PERIOD_DAYS),
        payment_approved_at=now,
    )


def request_renewal(plan: Plan, now: datetime, revoke_active: bool = True) -> Plan:
    status = plan.status(now)
    exhausted = status is PlanStatus.ACTIVE and plan.meals_remaining <= 0
    if not (status is PlanStatus.EXPIRED or exhausted):
        raise InvalidPlanTransitionError(
            "Renewal is only possible for an expired or fully used plan",
            status=status.value,
        )
    if not revoke_active:
        return replace(plan, payment_submitted=True)
    return replace(
        plan,
        payment_submitted=True,
        paid=False,
        meals_remaining=0,
        start_date=None,
        end_date=None,
    )


def decrement(plan: Plan, qty: int) -> Plan:
    if qty < 0:
        raise ValueError("qty must not be negative")
    remaining = max(0, plan.meals_remaining - qty)
    return replace(plan, meals_remaining=min(remaining, plan.total_meals))


# --- derived metrics ----------------------------------------------------------

def _order_qty(order) -> int:
    return sum(item.quantity or 0 for item in order.items)


def plan_window_orders(plan: Plan, orders: Iterable) -> List:
    """Non-extra, non-cancelled orders created inside the plan window."""
    if not plan.paid or plan.start_date is None or plan.end_date is None:
        return []
    start, end = as_utc(plan.start_date), as_utc(plan.end_date)
    return [
        o for o in orders
        if not o.is_extra_order
        and o.status != "cancelled"
        and start <= as_utc(o.created_at) <= end
    ]


@dataclass
class LedgerSnapshot:
    status: PlanStatus
    total_meals: int
    meals_remaining: int
    remaining_capacity: int
    plan_used_meals: int
    pending_plan_meals: int
    item_usage: Dict[str, int] = field(default_factory=dict)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status is PlanStatus.ACTIVE

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]

    def usage_of(self, item_id: str) -> int:
        return self.item_usage.get(item_id, 0)


def snapshot(plan: Plan, orders: Iterable, now: datetime) -> LedgerSnapshot:
    window = plan_window_orders(plan, orders)

    pending_qty = sum(_order_qty(o) for o in window if o.status == "pending")
    used_qty = sum(_order_qty(o) for o in window)

    # distinct orders per item, an item repeated inside one order counts once
    usage: Counter = Counter()
    for o in window:
        usage.update({item.item_id for item in o.items})

    return LedgerSnapshot(
        status=plan.status(now),
        total_meals=plan.total_meals,
        meals_remaining=plan.meals_remaining,
        remaining_capacity=max(0, plan.meals_remaining - pending_qty),
        plan_used_meals=used_qty,
        pending_plan_meals=pending_qty,
        item_usage=dict(usage),
        start_date=plan.start_date,
        end_date=plan.end_date,
    )


@dataclass(frozen=True)
class CapacityCheck:
    ok: bool
    reason: Optional[CapacityReason] = None

    @classmethod
    def accepted(cls) -> "CapacityCheck":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: CapacityReason) -> "CapacityCheck":
        return cls(ok=False, reason=reason)


def can_add(ledger: LedgerSnapshot, item_id: str, cart_total_qty: int, requested_qty: int = 1) -> CapacityCheck:
    if not ledger.is_active:
        # no restriction, the order will be flagged extra
        return CapacityCheck.accepted()
    if ledger.remaining_capacity <= 0:
        return CapacityCheck.rejected(CapacityReason.PLAN_FULL)
    if ledger.usage_of(item_id) >= PER_ITEM_MAX:
        return CapacityCheck.rejected(CapacityReason.ITEM_MAXED_FOR_PLAN)
    if cart_total_qty + requested_qty > ledger.remaining_capacity:
        return CapacityCheck.rejected(CapacityReason.EXCEEDS_REMAINING_CAPACITY)
    return CapacityCheck.accepted()


def is_extra_order(ledger: LedgerSnapshot, total_qty: int) -> bool:
    return not ledger.is_active or total_qty > ledger.remaining_capacity


def utilization(plan: Plan) -> Dict[str, int]:
    total = plan.total_meals
    used = max(0, total - plan.meals_remaining)
    pct = round(used / total * 100) if total > 0 else 0
    return {"used": used, "total": total, "pct": pct, "remaining": plan.meals_remaining}
