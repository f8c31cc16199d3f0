from datetime import timedelta

import pytest
import redis
from sqlalchemy.exc import OperationalError

from mealplan.domain.errors import (
    CustomerNotFoundError,
    InvalidPlanTransitionError,
    InvalidReceiptError,
    LedgerLockUnavailableError,
    StoreUnavailableError,
)
from mealplan.repos.order_repo import OrderRepo
from mealplan.services.lock_service import LockService
from mealplan.services.plan_service import PlanService

from conftest import CUSTOMER_ID, NOW, OWNER_ID

PNG = b"\x89PNG\r\n\x1a\nreceipt"


class TestPayment:
    def test_receipt_then_approval_activates_plan(self, plan_service, approval_service, receipts, notifier, customer):
        plan = plan_service.submit_receipt(CUSTOMER_ID, "upi.png", "image/png", PNG, NOW)

        assert plan["status"] == "payment_submitted"
        assert plan["status_label"] == "Payment submitted"
        assert plan["receipt_name"] == "upi.png"
        assert receipts.uploads[0][:3] == (CUSTOMER_ID, "upi.png", "image/png")

        pending = approval_service.pending_payments(NOW)
        assert [p["customer_id"] for p in pending] == [CUSTOMER_ID]
        assert pending[0]["receipt_ref"] == "receipt-101-1"

        plan = approval_service.approve_payment(CUSTOMER_ID, NOW)

        assert plan["status"] == "active"
        assert plan["paid"] is True
        assert plan["payment_submitted"] is False
        assert plan["meals_remaining"] == plan["total_meals"] == 30
        assert plan["end_date"] - plan["start_date"] == timedelta(days=30)
        assert notifier.events == [("plan_activated", CUSTOMER_ID, (NOW + timedelta(days=30)).isoformat())]
        assert approval_service.pending_payments(NOW) == []

    def test_approval_without_receipt_still_activates(self, approval_service, customer):
        plan = approval_service.approve_payment(CUSTOMER_ID, NOW)
        assert plan["status"] == "active"

    def test_unknown_customer(self, approval_service):
        with pytest.raises(CustomerNotFoundError):
            approval_service.approve_payment(999, NOW)

    def test_pdf_receipt_rejected_before_upload(self, plan_service, receipts, customer):
        with pytest.raises(InvalidReceiptError):
            plan_service.submit_receipt(CUSTOMER_ID, "upi.pdf", "application/pdf", b"%PDF", NOW)
        assert receipts.uploads == []
        assert plan_service.get_plan(CUSTOMER_ID, NOW)["status"] == "inactive"

    def test_receipt_refused_while_plan_active(self, plan_service, receipts, active_customer):
        with pytest.raises(InvalidPlanTransitionError):
            plan_service.submit_receipt(CUSTOMER_ID, "upi.png", "image/png", PNG, NOW)
        assert receipts.uploads == []


class TestRenewal:
    def exhaust(self, db, customer):
        customer.plan_meals_remaining = 0
        db.commit()

    def test_renewal_revokes_used_up_plan(self, plan_service, approval_service, db, active_customer):
        self.exhaust(db, active_customer)

        plan = plan_service.request_renewal(CUSTOMER_ID, NOW)
        assert plan["status"] == "payment_submitted"
        assert plan["end_date"] is None

        plan_service.submit_receipt(CUSTOMER_ID, "renew.jpg", "image/jpeg", b"jpeg", NOW)
        plan = approval_service.approve_payment(CUSTOMER_ID, NOW + timedelta(hours=2))

        assert plan["status"] == "active"
        assert plan["meals_remaining"] == 30

    def test_renewal_can_keep_running_plan(self, db, lock_service, receipts, notifier, active_customer):
        self.exhaust(db, active_customer)
        service = PlanService(
            db=db,
            lock_service=lock_service,
            receipt_client=receipts,
            notification_service=notifier,
            revoke_on_renewal=False,
        )

        plan = service.request_renewal(CUSTOMER_ID, NOW)

        assert plan["status"] == "active"
        assert plan["renewal_pending"] is True
        # a receipt for the pending renewal is accepted while still active
        plan = service.submit_receipt(CUSTOMER_ID, "renew.png", "image/png", PNG, NOW)
        assert plan["receipt_name"] == "renew.png"

    def test_renewal_refused_with_capacity_left(self, plan_service, active_customer):
        with pytest.raises(InvalidPlanTransitionError):
            plan_service.request_renewal(CUSTOMER_ID, NOW)

    def test_ledger_version_moves_on_every_write(self, plan_service, approval_service, db, customer):
        plan_service.submit_receipt(CUSTOMER_ID, "upi.png", "image/png", PNG, NOW)
        approval_service.approve_payment(CUSTOMER_ID, NOW)

        db.refresh(customer)
        assert customer.plan_version == 3


class TestDashboard:
    def test_owner_overview(self, approval_service, order_service, cart_service, make_customer, active_customer):
        make_customer(OWNER_ID, role="owner")

        for _ in range(2):
            cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
        approved = order_service.checkout(CUSTOMER_ID, now=NOW)
        approval_service.approve_order(approved["id"], NOW)

        cart_service.add_item(CUSTOMER_ID, "melon-mint", NOW)
        pending = order_service.checkout(CUSTOMER_ID, now=NOW)

        board = approval_service.dashboard(NOW)

        assert board["pending_orders"] == 1
        assert board["pending_payments"] == 0
        assert [c["customer_id"] for c in board["customers"]] == [CUSTOMER_ID]

        stats = board["customers"][0]
        assert stats["status"] == "active"
        assert stats["approved_count"] == 1
        assert stats["pending_count"] == 1
        assert stats["total_spent"] == approved["total_price"] + pending["total_price"]
        assert stats["used"] == 2
        assert stats["remaining"] == 28
        assert stats["plan_used_meals"] == 3

        assert [o["id"] for o in approval_service.pending_orders()] == [pending["id"]]

    def test_cancelled_orders_drop_out(self, approval_service, order_service, cart_service, active_customer):
        cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
        order = order_service.checkout(CUSTOMER_ID, now=NOW)
        approval_service.cancel_order(order["id"], NOW)

        stats = approval_service.dashboard(NOW)["customers"][0]

        assert stats["pending_count"] == 0
        assert stats["total_spent"] == 0
        assert approval_service.list_orders(status="cancelled")[0]["id"] == order["id"]


def test_store_outage_during_ledger_write(plan_service, customer):
    def unit():
        raise OperationalError("UPDATE customers", {}, Exception("connection refused"))

    with pytest.raises(StoreUnavailableError):
        plan_service.run_ledger_unit(CUSTOMER_ID, unit)


def test_store_outage_during_checkout(order_service, cart_service, active_customer, monkeypatch):
    cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)

    def add_order(self, order):
        raise OperationalError("INSERT INTO orders", {}, Exception("connection refused"))

    monkeypatch.setattr(OrderRepo, "add_order", add_order)

    with pytest.raises(StoreUnavailableError):
        order_service.checkout(CUSTOMER_ID, now=NOW)

    monkeypatch.undo()
    assert order_service.list_orders(CUSTOMER_ID) == []
    assert cart_service.get_cart(CUSTOMER_ID, NOW)["total_qty"] == 1


def test_store_outage_during_cancel(order_service, cart_service, active_customer, monkeypatch):
    cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
    order = order_service.checkout(CUSTOMER_ID, now=NOW)

    def transition_status(self, order_id, from_status, to_status, **stamps):
        raise OperationalError("UPDATE orders", {}, Exception("connection refused"))

    monkeypatch.setattr(OrderRepo, "transition_status", transition_status)

    with pytest.raises(StoreUnavailableError):
        order_service.cancel(order["id"], NOW)

    monkeypatch.undo()
    assert order_service.get_order(order["id"], CUSTOMER_ID)["status"] == "pending"


class UnreachableRedis:
    def set(self, *args, **kwargs):
        raise redis.ConnectionError("Error 111 connecting to 127.0.0.1:1. Connection refused.")

    def eval(self, *args, **kwargs):
        raise redis.ConnectionError("Error 111 connecting to 127.0.0.1:1. Connection refused.")


def test_lock_store_outage_is_a_collaborator_error(db, receipts, notifier, customer):
    lock_service = LockService(url="redis://127.0.0.1:1/0", attempts=1)
    lock_service.redis = UnreachableRedis()
    service = PlanService(db=db, lock_service=lock_service, receipt_client=receipts, notification_service=notifier)

    with pytest.raises(LedgerLockUnavailableError) as exc:
        service.approve_payment(CUSTOMER_ID, NOW)

    assert exc.value.status_code == 503
    assert exc.value.to_detail()["code"] == "ledger_lock_unavailable"
    assert service.get_plan(CUSTOMER_ID, NOW)["status"] == "inactive"
    assert notifier.events == []
