import os

# must be set before mealplan.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"

import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import mealplan.data.models  # noqa: F401
from mealplan.api import deps
from mealplan.data.database import Base, build_engine, get_db
from mealplan.data.models.customer import CustomerModel
from mealplan.domain.errors import LedgerBusyError
from mealplan.main import app
from mealplan.services.approval_service import ApprovalService
from mealplan.services.cart_service import CartService
from mealplan.services.order_service import OrderService
from mealplan.services.plan_service import PlanService
from mealplan.services.receipt_client import ReceiptStorageClient

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

CUSTOMER_ID = 101
OWNER_ID = 1


class FakeLockService:
    """In-process stand-in for the redis ledger lock."""

    def __init__(self):
        self._locks = defaultdict(threading.Lock)
        self.acquired = []

    @contextmanager
    def customer_ledger(self, customer_id):
        lock = self._locks[customer_id]
        if not lock.acquire(timeout=1):
            raise LedgerBusyError()
        self.acquired.append(customer_id)
        try:
            yield
        finally:
            lock.release()


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def notify_order_approved(self, user_id, order_id):
        self.events.append(("order_approved", user_id, order_id))

    def notify_plan_activated(self, user_id, end_date_iso):
        self.events.append(("plan_activated", user_id, end_date_iso))


class FakeReceiptStorage(ReceiptStorageClient):
    """Real validation, no HTTP."""

    def __init__(self):
        super().__init__(base_url="http://receipts.test")
        self.uploads = []

    def _post(self, customer_id, filename, content_type, data):
        self.uploads.append((customer_id, filename, content_type, data))
        return {"reference": f"receipt-{customer_id}-{len(self.uploads)}"}


def order_stub(item_ids, status="pending", is_extra=False, created_at=NOW, qty=1):
    """Order-shaped object for the pure ledger functions."""
    return SimpleNamespace(
        status=status,
        is_extra_order=is_extra,
        created_at=created_at,
        items=[SimpleNamespace(item_id=i, quantity=qty) for i in item_ids],
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def receipts():
    return FakeReceiptStorage()


@pytest.fixture
def plan_service(db, lock_service, receipts, notifier):
    return PlanService(db=db, lock_service=lock_service, receipt_client=receipts, notification_service=notifier)


@pytest.fixture
def cart_service(db, plan_service):
    return CartService(db=db, plan_service=plan_service)


@pytest.fixture
def order_service(db, plan_service, cart_service):
    return OrderService(db=db, plan_service=plan_service, cart_service=cart_service)


@pytest.fixture
def approval_service(db, plan_service, order_service):
    return ApprovalService(db=db, plan_service=plan_service, order_service=order_service)


@pytest.fixture
def make_customer(db):
    def _make(customer_id=CUSTOMER_ID, **fields):
        customer = CustomerModel(
            id=customer_id,
            name=fields.pop("name", f"Customer {customer_id}"),
            email=fields.pop("email", f"c{customer_id}@example.com"),
            address=fields.pop("address", "12 MG Road"),
            role=fields.pop("role", "customer"),
            **fields,
        )
        db.add(customer)
        db.commit()
        return customer
    return _make


@pytest.fixture
def customer(make_customer):
    """Customer without a plan."""
    return make_customer()


@pytest.fixture
def active_customer(make_customer):
    """Customer whose plan was approved a day before NOW, full capacity."""
    start = NOW - timedelta(days=1)
    return make_customer(
        plan_paid=True,
        plan_total_meals=30,
        plan_meals_remaining=30,
        plan_start_date=start,
        plan_end_date=start + timedelta(days=30),
    )


@pytest.fixture
def client(db, lock_service, notifier, receipts):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[deps.get_lock_service] = lambda: lock_service
    app.dependency_overrides[deps.get_notification_service] = lambda: notifier
    app.dependency_overrides[deps.get_receipt_client] = lambda: receipts
    yield TestClient(app)
    app.dependency_overrides.clear()


def customer_headers(user_id=CUSTOMER_ID):
    return {"X-User-Id": str(user_id), "X-Role": "customer"}


def owner_headers(user_id=OWNER_ID):
    return {"X-User-Id": str(user_id), "X-Role": "owner"}
