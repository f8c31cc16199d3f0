# mealplan/services/cart_service.py
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Any, Optional

from sqlalchemy.orm import Session

from mealplan.data.models.cart import CartModel
from mealplan.domain.cart import Cart
from mealplan.domain.catalog import get_item
from mealplan.domain.errors import CapacityError, CartConflictError
from mealplan.repos.cart_repo import CartRepo
from mealplan.services.plan_service import PlanService
from mealplan.utils.clock import as_utc, utcnow
from mealplan.utils.settings import CART_TTL_SECONDS
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Cart use cases. Commands (add, remove, set, clear) modify state,
    get is read-only apart from lazily opening a cart.

    The cart row carries a version; every write is
    update ... set version = v + 1 where id = :id and version = v.
    """

    def __init__(self, db: Session, plan_service: PlanService):
        self.repo = CartRepo(db)
        self.plan_service = plan_service

    # query
    def get_cart(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        cart = self.open_cart(user_id, now or utcnow())
        return self.to_dict(cart)

    def load_domain_cart(self, cart: CartModel) -> Cart:
        return Cart({i.item_id: i.quantity for i in self.repo.get_cart_items(cart.id)})

    def open_cart(self, user_id: int, now: datetime) -> CartModel:
        self.plan_service.require_customer(user_id)
        existing = self.repo.get_active_cart_by_user(user_id)

        if existing and as_utc(existing.expires_at) >= now:
            return existing

        if existing:
            # TTL elapsed before the beat task got to it
            logger.info(f"Cart {existing.id} of user {user_id} expired, opening a new one")
            self.repo.update_cart_version(existing.id, existing.version, {
                "status": "EXPIRED",
                "version": existing.version + 1,
            })
            self.repo.commit()

        created = self.repo.create_cart(CartModel(
            user_id=user_id,
            status="ACTIVE",
            version=1,
            expires_at=now + timedelta(seconds=CART_TTL_SECONDS),
        ))
        logger.info(f"Opened cart {created.id} for user {user_id}")
        return created

    def to_dict(self, cart: CartModel) -> Dict[str, Any]:
        lines = []
        total = Decimal("0")
        for row in self.repo.get_cart_items(cart.id):
            item = get_item(row.item_id)
            line_total = item.unit_price * row.quantity
            total += line_total
            lines.append({
                "item_id": item.id,
                "name": item.name,
                "quantity": row.quantity,
                "unit_price": item.unit_price,
                "line_total": line_total,
            })

        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "status": cart.status,
            "items": lines,
            "total_qty": sum(line["quantity"] for line in lines),
            "total": total,
            "expires_at": cart.expires_at,
        }

    # commands
    def add_item(self, user_id: int, item_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        cart_row = self.open_cart(user_id, now)
        cart = self.load_domain_cart(cart_row)

        snap = self.plan_service.ledger_snapshot(user_id, now)
        try:
            qty = cart.add(item_id, snap)
        except CapacityError as e:
            logger.info(f"Cart {cart_row.id}: {item_id} rejected ({e.reason.value})")
            raise

        self._save(cart_row, cart, now)
        logger.info(f"Cart {cart_row.id}: {item_id} x{qty}")
        return self.to_dict(cart_row)

    def remove_item(self, user_id: int, item_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        cart_row = self.open_cart(user_id, now)
        cart = self.load_domain_cart(cart_row)

        qty = cart.remove(item_id)

        self._save(cart_row, cart, now)
        logger.info(f"Cart {cart_row.id}: {item_id} down to {qty}")
        return self.to_dict(cart_row)

    def set_quantity(self, user_id: int, item_id: str, quantity: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        cart_row = self.open_cart(user_id, now)
        cart = self.load_domain_cart(cart_row)

        snap = self.plan_service.ledger_snapshot(user_id, now)
        qty = cart.set_quantity(item_id, quantity, snap)

        self._save(cart_row, cart, now)
        logger.info(f"Cart {cart_row.id}: {item_id} set to {qty}")
        return self.to_dict(cart_row)

    def clear(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        cart_row = self.open_cart(user_id, now)
        cart = self.load_domain_cart(cart_row)
        cart.clear()
        self._save(cart_row, cart, now)
        logger.info(f"Cart {cart_row.id} cleared")
        return self.to_dict(cart_row)

    def mark_checked_out(self, cart_row: CartModel) -> None:
        """Empty the cart and close it; the caller commits together with the order."""
        self.repo.delete_items(cart_row.id)
        rowcount = self.repo.update_cart_version(cart_row.id, cart_row.version, {
            "status": "CHECKED_OUT",
            "version": cart_row.version + 1,
        })
        if rowcount == 0:
            raise CartConflictError()

    def _save(self, cart_row: CartModel, cart: Cart, now: datetime) -> None:
        old_version = cart_row.version
        self.repo.replace_items(cart_row.id, cart.quantities())

        # every action pushes the TTL forward
        rowcount = self.repo.update_cart_version(cart_row.id, old_version, {
            "version": old_version + 1,
            "expires_at": now + timedelta(seconds=CART_TTL_SECONDS),
        })

        if rowcount == 0:
            self.repo.rollback()
            raise CartConflictError()

        self.repo.commit()
