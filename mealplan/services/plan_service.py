# mealplan/services/plan_service.py
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from mealplan.data.models.customer import CustomerModel
from mealplan.domain import plan as ledger
from mealplan.domain.errors import ConcurrentLedgerUpdateError, CustomerNotFoundError, StoreUnavailableError
from mealplan.domain.plan import LedgerSnapshot, Plan
from mealplan.repos.customer_repo import CustomerRepo, plan_from_model
from mealplan.repos.order_repo import OrderRepo
from mealplan.services.lock_service import LockService
from mealplan.services.notification_service import NotificationService
from mealplan.services.receipt_client import ReceiptStorageClient
from mealplan.utils.clock import utcnow
from mealplan.utils.retry import ledger_write_retry
from mealplan.utils.settings import RENEWAL_REVOKES_ACTIVE_PLAN
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)


class StaleLedgerVersion(Exception):
    """plan_version moved between read and write"""


class PlanService:
    """
    Plan ledger use cases.

    Every write goes through run_ledger_unit: redis lock for the customer,
    then read -> transition -> UPDATE ... WHERE plan_version = :old, retried
    as a whole when the version check loses.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        receipt_client: Optional[ReceiptStorageClient] = None,
        notification_service: Optional[NotificationService] = None,
        revoke_on_renewal: bool = RENEWAL_REVOKES_ACTIVE_PLAN,
    ):
        self.db = db
        self.repo = CustomerRepo(db)
        self.orders = OrderRepo(db)
        self.lock_service = lock_service
        self.receipt_client = receipt_client or ReceiptStorageClient()
        self.notification_service = notification_service or NotificationService()
        self.revoke_on_renewal = revoke_on_renewal

    # query
    def require_customer(self, customer_id: int) -> CustomerModel:
        customer = self.repo.get_customer(customer_id)
        if not customer:
            raise CustomerNotFoundError()
        return customer

    def ledger_snapshot(self, customer_id: int, now: Optional[datetime] = None) -> LedgerSnapshot:
        customer = self.require_customer(customer_id)
        return self.snapshot_for(customer, now or utcnow())

    def snapshot_for(self, customer: CustomerModel, now: datetime) -> LedgerSnapshot:
        plan = plan_from_model(customer)
        return ledger.snapshot(plan, self.orders.list_by_user(customer.id), now)

    def get_plan(self, customer_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        customer = self.require_customer(customer_id)
        return self.plan_view(customer.id, plan_from_model(customer), self.snapshot_for(customer, now))

    @staticmethod
    def plan_view(customer_id: int, plan: Plan, snap: LedgerSnapshot) -> Dict[str, Any]:
        return {
            "customer_id": customer_id,
            "status": snap.status.value,
            "status_label": snap.status_label,
            "paid": plan.paid,
            "payment_submitted": plan.payment_submitted,
            "renewal_pending": plan.renewal_pending,
            "total_meals": plan.total_meals,
            "meals_remaining": plan.meals_remaining,
            "remaining_capacity": snap.remaining_capacity,
            "plan_used_meals": snap.plan_used_meals,
            "pending_plan_meals": snap.pending_plan_meals,
            "item_usage": snap.item_usage,
            "start_date": plan.start_date,
            "end_date": plan.end_date,
            "receipt_name": plan.receipt_name,
            "receipt_uploaded_at": plan.receipt_uploaded_at,
            "payment_approved_at": plan.payment_approved_at,
        }

    # commands
    def submit_receipt(
        self,
        customer_id: int,
        filename: str,
        content_type: str,
        data: bytes,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or utcnow()
        customer = self.require_customer(customer_id)

        # fail before uploading a blob nobody will reference
        ledger.check_receipt_allowed(plan_from_model(customer), now)

        reference = self.receipt_client.upload(customer_id, filename, content_type, data)
        self.mutate(customer_id, lambda p: ledger.submit_receipt(p, reference, filename, now))

        logger.info(f"Receipt {reference} submitted by customer {customer_id}")
        return self.get_plan(customer_id, now)

    def request_renewal(self, customer_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        self.require_customer(customer_id)

        self.mutate(
            customer_id,
            lambda p: ledger.request_renewal(p, now, revoke_active=self.revoke_on_renewal),
        )

        logger.info(
            f"Customer {customer_id} requested plan renewal "
            f"(revoke_active={self.revoke_on_renewal})"
        )
        return self.get_plan(customer_id, now)

    def approve_payment(self, customer_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        customer = self.require_customer(customer_id)

        if not customer.plan_payment_submitted:
            logger.warning(f"Approving payment for customer {customer_id} without a submitted receipt")

        plan = self.mutate(customer_id, lambda p: ledger.approve_payment(p, now))

        logger.info(f"Plan of customer {customer_id} active until {plan.end_date.isoformat()}")
        self.notification_service.notify_plan_activated(customer_id, plan.end_date.isoformat())
        return self.get_plan(customer_id, now)

    # ledger write primitives
    def mutate(self, customer_id: int, transition: Callable[[Plan], Plan]) -> Plan:
        return self.run_ledger_unit(customer_id, lambda: self.apply_in_transaction(customer_id, transition))

    def apply_in_transaction(self, customer_id: int, transition: Callable[[Plan], Plan]) -> Plan:
        """Read, transition and conditionally write the plan; the caller commits."""
        customer = self.repo.get_fresh(customer_id)
        if not customer:
            raise CustomerNotFoundError()

        plan = plan_from_model(customer)
        new_plan = transition(plan)

        rowcount = self.repo.update_plan_versioned(customer_id, plan.version, new_plan)
        if rowcount == 0:
            raise StaleLedgerVersion(customer_id)

        new_plan.version = plan.version + 1
        return new_plan

    def run_ledger_unit(self, customer_id: int, unit: Callable[[], Any]) -> Any:
        @ledger_write_retry(StaleLedgerVersion)
        def attempt():
            try:
                result = unit()
                self.db.commit()
                return result
            except Exception:
                self.db.rollback()
                raise

        with self.lock_service.customer_ledger(customer_id):
            try:
                return attempt()
            except StaleLedgerVersion:
                logger.warning(f"Ledger update for customer {customer_id} kept conflicting, giving up")
                raise ConcurrentLedgerUpdateError()
            except OperationalError as e:
                logger.error(f"Record store unavailable while updating ledger of customer {customer_id}: {e}")
                raise StoreUnavailableError() from e
