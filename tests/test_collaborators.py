import pytest
import redis
import requests
from fastapi.testclient import TestClient
from kombu.exceptions import OperationalError

from mealplan.domain.errors import InvalidReceiptError, LedgerBusyError, ReceiptUploadError
from mealplan.receipt_service.main import app as receipt_app
from mealplan.services import notification_service, receipt_client
from mealplan.services.lock_service import LockService
from mealplan.services.notification_service import NotificationService
from mealplan.services.receipt_client import ReceiptStorageClient


class FakeRedis:
    """SET NX PX and the compare-and-delete script, in memory."""

    def __init__(self):
        self.store = {}

    def set(self, name, value, nx=False, px=None):
        if nx and name in self.store:
            return None
        self.store[name] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


@pytest.fixture
def lock_with_fake_redis():
    service = LockService(url="redis://localhost:6379/0", attempts=2)
    service.redis = FakeRedis()
    return service


class TestLedgerLock:
    def test_held_for_the_block_then_released(self, lock_with_fake_redis):
        with lock_with_fake_redis.customer_ledger(7):
            assert "customer:7:ledger:lock" in lock_with_fake_redis.redis.store
        assert lock_with_fake_redis.redis.store == {}

    def test_busy_ledger(self, lock_with_fake_redis):
        lock_with_fake_redis.redis.store["customer:7:ledger:lock"] = "someone-else"

        with pytest.raises(LedgerBusyError):
            with lock_with_fake_redis.customer_ledger(7):
                pass

        assert lock_with_fake_redis.redis.store["customer:7:ledger:lock"] == "someone-else"

    def test_other_customers_do_not_block(self, lock_with_fake_redis):
        with lock_with_fake_redis.customer_ledger(7):
            with lock_with_fake_redis.customer_ledger(8):
                assert len(lock_with_fake_redis.redis.store) == 2

    def test_expired_lock_taken_over_is_not_released(self, lock_with_fake_redis):
        store = lock_with_fake_redis.redis.store
        with lock_with_fake_redis.customer_ledger(7):
            store["customer:7:ledger:lock"] = "new-holder"
        assert store["customer:7:ledger:lock"] == "new-holder"


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status}")

    def json(self):
        return self.payload


class TestReceiptClient:
    def test_upload_returns_reference(self, monkeypatch):
        sent = {}

        def fake_post(url, data, files, timeout):
            sent.update(url=url, data=data, files=files)
            return FakeResponse({"reference": "abc123"})

        monkeypatch.setattr(receipt_client.requests, "post", fake_post)

        ref = ReceiptStorageClient(base_url="http://receipts.test/").upload(5, "upi.jpg", "image/jpeg", b"jpeg")

        assert ref == "abc123"
        assert sent["url"] == "http://receipts.test/receipts"
        assert sent["data"] == {"customer_id": "5"}

    def test_storage_outage(self, monkeypatch):
        def fake_post(*args, **kwargs):
            raise requests.ConnectionError("down")

        monkeypatch.setattr(receipt_client.requests, "post", fake_post)

        with pytest.raises(ReceiptUploadError):
            ReceiptStorageClient(base_url="http://receipts.test").upload(5, "upi.png", "image/png", b"png")

    def test_empty_file(self):
        with pytest.raises(InvalidReceiptError):
            ReceiptStorageClient(base_url="http://receipts.test").upload(5, "upi.png", "image/png", b"")


class TestNotifications:
    def test_broker_outage_is_not_fatal(self, monkeypatch):
        def boom(*args):
            raise OperationalError("broker down")

        monkeypatch.setattr(notification_service.send_order_approved_task, "delay", boom)

        NotificationService().notify_order_approved(1, 2)

    def test_enqueues_task(self, monkeypatch):
        queued = []
        monkeypatch.setattr(notification_service.send_plan_activated_task, "delay", lambda *a: queued.append(a))

        NotificationService().notify_plan_activated(3, "2026-04-09T12:00:00+00:00")

        assert queued == [(3, "2026-04-09T12:00:00+00:00")]

    def test_task_body(self):
        result = notification_service.send_order_approved_task(1, 2)
        assert result == {"user_id": 1, "order_id": 2, "status": "sent"}


def test_dev_receipt_service_round_trip():
    client = TestClient(receipt_app)
    resp = client.post("/receipts", data={"customer_id": "5"}, files={"file": ("upi.png", b"png-bytes", "image/png")})
    assert resp.status_code == 201
    reference = resp.json()["reference"]
    assert reference.startswith("receipt-5-")

    stored = client.get(f"/receipts/{reference}")
    assert stored.content == b"png-bytes"
    assert stored.headers["content-type"] == "image/png"

    assert client.get("/receipts/nope").status_code == 404


def test_release_failure_leaves_key_to_expire(lock_with_fake_redis):
    def eval_down(*args):
        raise redis.ConnectionError("connection reset")

    lock_with_fake_redis.redis.eval = eval_down

    with lock_with_fake_redis.customer_ledger(7):
        pass

    assert "customer:7:ledger:lock" in lock_with_fake_redis.redis.store
