# mealplan/repos/order_repo.py
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from mealplan.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int, fresh: bool = False) -> OrderModel | None:
        return self.db.get(OrderModel, order_id, populate_existing=fresh)

    def get_by_idempotency_key(self, user_id: int, key: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.user_id == user_id, OrderModel.idempotency_key == key)
        ).scalars().first()

    def list_by_user(self, user_id: int, status: Optional[str] = None) -> List[OrderModel]:
        stmt = select(OrderModel).where(OrderModel.user_id == user_id)
        if status:
            stmt = stmt.where(OrderModel.status == status)
        return list(self.db.execute(stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())).scalars())

    def list_orders(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[OrderModel]:
        stmt = select(OrderModel)
        if status:
            stmt = stmt.where(OrderModel.status == status)
        stmt = stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        if limit:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars())

    def transition_status(self, order_id: int, from_status: str, to_status: str, **stamps) -> int:
        """Compare-and-swap on status; returns affected rows (0 = lost the race or wrong state)."""
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == from_status)
            .values(status=to_status, **stamps)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
