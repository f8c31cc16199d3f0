# mealplan/repos/customer_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from mealplan.data.models.customer import CustomerModel
from mealplan.domain.plan import Plan


def plan_from_model(customer: CustomerModel) -> Plan:
    return Plan(
        paid=customer.plan_paid,
        payment_submitted=customer.plan_payment_submitted,
        total_meals=customer.plan_total_meals,
        meals_remaining=customer.plan_meals_remaining,
        start_date=customer.plan_start_date,
        end_date=customer.plan_end_date,
        receipt_ref=customer.plan_receipt_ref,
        receipt_name=customer.plan_receipt_name,
        receipt_uploaded_at=customer.plan_receipt_uploaded_at,
        payment_approved_at=customer.plan_payment_approved_at,
        version=customer.plan_version,
    )


def _plan_columns(plan: Plan) -> dict:
    return {
        "plan_paid": plan.paid,
        "plan_payment_submitted": plan.payment_submitted,
        "plan_total_meals": plan.total_meals,
        "plan_meals_remaining": plan.meals_remaining,
        "plan_start_date": plan.start_date,
        "plan_end_date": plan.end_date,
        "plan_receipt_ref": plan.receipt_ref,
        "plan_receipt_name": plan.receipt_name,
        "plan_receipt_uploaded_at": plan.receipt_uploaded_at,
        "plan_payment_approved_at": plan.payment_approved_at,
    }


class CustomerRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_customer(self, customer_id: int) -> CustomerModel | None:
        return self.db.get(CustomerModel, customer_id)

    def get_fresh(self, customer_id: int) -> CustomerModel | None:
        # always re-read, the ledger may have moved since the identity map was filled
        return self.db.get(CustomerModel, customer_id, populate_existing=True)

    def create_customer(self, customer: CustomerModel) -> CustomerModel:
        self.db.add(customer)
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def update_profile(self, customer: CustomerModel, data: dict) -> CustomerModel:
        for key, value in data.items():
            setattr(customer, key, value)
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def list_customers(self) -> List[CustomerModel]:
        return list(
            self.db.execute(
                select(CustomerModel).where(CustomerModel.role == "customer").order_by(CustomerModel.id)
            ).scalars()
        )

    def list_pending_payments(self) -> List[CustomerModel]:
        return list(
            self.db.execute(
                select(CustomerModel)
                .where(CustomerModel.plan_payment_submitted.is_(True))
                .order_by(CustomerModel.plan_receipt_uploaded_at)
            ).scalars()
        )

    def update_plan_versioned(self, customer_id: int, old_version: int, plan: Plan) -> int:
        """
        UPDATE customers SET ..., plan_version = old + 1
        WHERE id = :id AND plan_version = :old

        Returns affected rows; 0 means someone else wrote the ledger first.
        """
        values = _plan_columns(plan)
        values["plan_version"] = old_version + 1
        result = self.db.execute(
            update(CustomerModel)
            .where(CustomerModel.id == customer_id, CustomerModel.plan_version == old_version)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
