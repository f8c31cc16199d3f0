# mealplan/data/models/customer.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from mealplan.data.database import Base
from mealplan.domain.constants import PLAN_CAPACITY


class CustomerModel(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    mobile = Column(String, nullable=True)
    address = Column(String, nullable=True)
    role = Column(String, nullable=False, default="customer")  # customer, owner

    # plan embedded in the customer record
    plan_paid = Column(Boolean, nullable=False, default=False)
    plan_payment_submitted = Column(Boolean, nullable=False, default=False)
    plan_total_meals = Column(Integer, nullable=False, default=PLAN_CAPACITY)
    plan_meals_remaining = Column(Integer, nullable=False, default=0)
    plan_start_date = Column(DateTime(timezone=True), nullable=True)
    plan_end_date = Column(DateTime(timezone=True), nullable=True)
    plan_receipt_ref = Column(String, nullable=True)
    plan_receipt_name = Column(String, nullable=True)
    plan_receipt_uploaded_at = Column(DateTime(timezone=True), nullable=True)
    plan_payment_approved_at = Column(DateTime(timezone=True), nullable=True)

    # optimistic locking for ledger writes
    plan_version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True)
