# mealplan/services/receipt_client.py
import requests
from requests import RequestException

from mealplan.domain.errors import InvalidReceiptError, ReceiptUploadError
from mealplan.utils.retry import http_retry
from mealplan.utils.settings import RECEIPT_SERVICE_URL
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png")


class ReceiptStorageClient:
    """Receipt blob storage; the engine only keeps the returned reference."""

    def __init__(self, base_url: str | None = None, timeout: int = 5):
        self.base_url = (base_url or RECEIPT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def _post(self, customer_id: int, filename: str, content_type: str, data: bytes) -> dict:
        url = f"{self.base_url}/receipts"
        logger.info(f"ReceiptStorageClient POST {url} customer={customer_id}")

        resp = requests.post(
            url,
            data={"customer_id": str(customer_id)},
            files={"file": (filename, data, content_type)},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def upload(self, customer_id: int, filename: str, content_type: str, data: bytes) -> str:
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidReceiptError(f"Only JPG and PNG images are allowed, got {content_type}")
        if not data:
            raise InvalidReceiptError("Receipt file is empty")

        try:
            payload = self._post(customer_id, filename, content_type, data)
        except RequestException as e:
            logger.error(f"Receipt upload for customer {customer_id} failed: {e}")
            raise ReceiptUploadError() from e

        return payload["reference"]
