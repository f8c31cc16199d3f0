from datetime import timedelta

import pytest

from mealplan.data.models.cart import CartModel
from mealplan.domain.errors import CapacityError, CapacityReason, CustomerNotFoundError
from mealplan.repos.cart_repo import CartRepo
from mealplan.tasks.expire import expire_carts
from mealplan.utils.clock import as_utc

from conftest import CUSTOMER_ID, NOW


def test_cart_opened_lazily(cart_service, customer):
    cart = cart_service.get_cart(CUSTOMER_ID, NOW)

    assert cart["status"] == "ACTIVE"
    assert cart["items"] == []
    assert cart["total_qty"] == 0


def test_unknown_customer_has_no_cart(cart_service):
    with pytest.raises(CustomerNotFoundError):
        cart_service.get_cart(999, NOW)


def test_add_persists_lines_and_bumps_version(cart_service, db, customer):
    cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
    cart = cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
    cart = cart_service.add_item(CUSTOMER_ID, "melon-mint", NOW)

    assert [(line["item_id"], line["quantity"]) for line in cart["items"]] == [
        ("tofu-sandwich", 2),
        ("melon-mint", 1),
    ]
    assert cart["total"] == 85 * 2 + 75

    row = db.get(CartModel, cart["cart_id"])
    assert row.version == 4


def test_every_action_pushes_ttl(cart_service, customer):
    first = cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
    later = cart_service.add_item(CUSTOMER_ID, "melon-mint", NOW + timedelta(minutes=10))

    assert later["cart_id"] == first["cart_id"]
    assert as_utc(later["expires_at"]) == NOW + timedelta(minutes=25)


def test_expired_cart_replaced_on_next_access(cart_service, db, customer):
    old = cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)

    fresh = cart_service.get_cart(CUSTOMER_ID, NOW + timedelta(minutes=16))

    assert fresh["cart_id"] != old["cart_id"]
    assert fresh["items"] == []
    assert db.get(CartModel, old["cart_id"]).status == "EXPIRED"


def test_remove_set_and_clear(cart_service, customer):
    cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
    cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)

    cart = cart_service.remove_item(CUSTOMER_ID, "tofu-sandwich", NOW)
    assert cart["total_qty"] == 1

    cart = cart_service.set_quantity(CUSTOMER_ID, "coffee-oats", 4, NOW)
    assert cart["total_qty"] == 5

    cart = cart_service.clear(CUSTOMER_ID, NOW)
    assert cart["items"] == []


def test_capacity_rejection_is_not_saved(cart_service, db, make_customer):
    start = NOW - timedelta(days=1)
    make_customer(
        plan_paid=True,
        plan_meals_remaining=1,
        plan_start_date=start,
        plan_end_date=start + timedelta(days=30),
    )
    cart = cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
    version = db.get(CartModel, cart["cart_id"]).version

    with pytest.raises(CapacityError):
        cart_service.add_item(CUSTOMER_ID, "melon-mint", NOW)

    cart = cart_service.get_cart(CUSTOMER_ID, NOW)
    assert cart["total_qty"] == 1
    assert db.get(CartModel, cart["cart_id"]).version == version


class TestExpireTask:
    def test_expires_stale_active_carts(self, cart_service, db, customer):
        cart = cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)

        assert expire_carts(db, NOW + timedelta(minutes=20)) == 1

        row = db.get(CartModel, cart["cart_id"])
        assert row.status == "EXPIRED"
        assert CartRepo(db).get_cart_items(row.id) == []

    def test_leaves_live_carts_alone(self, cart_service, db, customer):
        cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)

        assert expire_carts(db, NOW + timedelta(minutes=5)) == 0
        assert cart_service.get_cart(CUSTOMER_ID, NOW + timedelta(minutes=5))["total_qty"] == 1


def test_item_maxed_after_five_plan_orders(cart_service, order_service, active_customer):
    for _ in range(5):
        cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)
        order_service.checkout(CUSTOMER_ID, now=NOW)

    with pytest.raises(CapacityError) as exc:
        cart_service.add_item(CUSTOMER_ID, "tofu-sandwich", NOW)

    assert exc.value.reason is CapacityReason.ITEM_MAXED_FOR_PLAN
    assert cart_service.add_item(CUSTOMER_ID, "melon-mint", NOW)["total_qty"] == 1
