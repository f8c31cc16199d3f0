# mealplan/repos/cart_repo.py
from datetime import datetime
from typing import Dict, List

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from mealplan.data.models.cart import CartModel
from mealplan.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: int) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def get_active_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .where(CartModel.user_id == user_id, CartModel.status == "ACTIVE")
            .order_by(CartModel.id.desc())
        ).scalars().first()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def get_cart_items(self, cart_id: int) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel).where(CartItemModel.cart_id == cart_id).order_by(CartItemModel.id)
            ).scalars()
        )

    def replace_items(self, cart_id: int, quantities: Dict[str, int]) -> None:
        existing = {i.item_id: i for i in self.get_cart_items(cart_id)}

        for item_id, row in existing.items():
            if item_id not in quantities:
                self.db.delete(row)

        for item_id, qty in quantities.items():
            row = existing.get(item_id)
            if row is None:
                self.db.add(CartItemModel(cart_id=cart_id, item_id=item_id, quantity=qty))
            else:
                row.quantity = qty
        self.db.flush()

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        # optimistic locking: update ... where id = :id and version = :old
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def list_expired(self, now: datetime) -> List[CartModel]:
        return list(
            self.db.execute(
                select(CartModel).where(CartModel.status == "ACTIVE", CartModel.expires_at < now)
            ).scalars()
        )

    def delete_items(self, cart_id: int) -> None:
        self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
