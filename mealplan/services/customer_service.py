# mealplan/services/customer_service.py
from sqlalchemy.orm import Session

from mealplan.data.models.customer import CustomerModel
from mealplan.domain.errors import CustomerNotFoundError
from mealplan.domain.schemas import CustomerCreate, CustomerRead, CustomerUpdate
from mealplan.repos.customer_repo import CustomerRepo
from mealplan.utils.clock import utcnow
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)


class CustomerService:
    def __init__(self, db: Session):
        self.repo = CustomerRepo(db)

    def create_customer(self, payload: CustomerCreate) -> CustomerRead:
        existing = self.repo.get_customer(payload.id)
        if existing:
            return CustomerRead.model_validate(existing)

        customer = CustomerModel(
            id=payload.id,
            name=payload.name,
            email=payload.email,
            mobile=payload.mobile,
            address=payload.address,
            role=payload.role,
        )
        created = self.repo.create_customer(customer)
        logger.info(f"Customer {created.id} registered as {created.role}")
        return CustomerRead.model_validate(created)

    def get_customer(self, customer_id: int) -> CustomerRead:
        customer = self.repo.get_customer(customer_id)
        if not customer:
            raise CustomerNotFoundError()
        return CustomerRead.model_validate(customer)

    def update_profile(self, customer_id: int, payload: CustomerUpdate) -> CustomerRead:
        customer = self.repo.get_customer(customer_id)
        if not customer:
            raise CustomerNotFoundError()

        data = payload.model_dump(exclude_unset=True)
        data["updated_at"] = utcnow()
        updated = self.repo.update_profile(customer, data)
        return CustomerRead.model_validate(updated)
