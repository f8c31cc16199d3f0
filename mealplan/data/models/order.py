# mealplan/data/models/order.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship

from mealplan.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    status = Column(String, nullable=False, default="pending", index=True)  # pending, approved, cancelled
    is_extra_order = Column(Boolean, nullable=False, default=False)
    total_qty = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    address = Column(String, nullable=True)
    idempotency_key = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    approved_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItemModel.id",
    )

    __table_args__ = (UniqueConstraint("user_id", "idempotency_key", name="u_order_idempotency"),)
