# mealplan/services/lock_service.py
import uuid
from contextlib import contextmanager

import redis
from tenacity import retry, stop_after_attempt, wait_fixed, retry_if_result

from mealplan.domain.errors import LedgerBusyError, LedgerLockUnavailableError
from mealplan.utils.retry import redis_retry
from mealplan.utils.settings import REDIS_URL, LEDGER_LOCK_TTL_MS, LEDGER_LOCK_ATTEMPTS
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete in one step, so a lock that expired and was taken by
# someone else is never released by the previous holder
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


def _ledger_key(customer_id: int) -> str:
    return f"customer:{customer_id}:ledger:lock"


class LockService:
    """
    Per-customer mutual exclusion for plan ledger writes.
    -SET NX PX with a random token
    -release through the Lua compare-and-delete
    """

    def __init__(self, url: str | None = None, ttl_ms: int = LEDGER_LOCK_TTL_MS, attempts: int = LEDGER_LOCK_ATTEMPTS):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl_ms = ttl_ms
        self.attempts = attempts

    @redis_retry()
    def acquire_customer_lock(self, customer_id: int, token: str) -> bool:
        key = _ledger_key(customer_id)
        logger.debug(f"Acquire lock {key}")
        return bool(self.redis.set(name=key, value=token, nx=True, px=self.ttl_ms))

    @redis_retry()
    def release_customer_lock(self, customer_id: int, token: str) -> bool:
        key = _ledger_key(customer_id)
        logger.debug(f"Release lock {key}")
        return bool(self.redis.eval(_RELEASE_LUA, 1, key, token))

    def _wait_for_lock(self, customer_id: int, token: str) -> bool:
        waiting = retry(
            stop=stop_after_attempt(self.attempts),
            wait=wait_fixed(0.05),
            retry=retry_if_result(lambda acquired: not acquired),
            retry_error_callback=lambda state: False,
        )
        return waiting(self.acquire_customer_lock)(customer_id, token)

    @contextmanager
    def customer_ledger(self, customer_id: int):
        token = uuid.uuid4().hex
        try:
            acquired = self._wait_for_lock(customer_id, token)
        except redis.RedisError as e:
            logger.error(f"Cannot lock ledger of customer {customer_id}: {e}")
            raise LedgerLockUnavailableError() from e
        if not acquired:
            logger.warning(f"Ledger of customer {customer_id} is busy")
            raise LedgerBusyError()
        try:
            yield
        finally:
            self._release(customer_id, token)

    def _release(self, customer_id: int, token: str) -> None:
        try:
            released = self.release_customer_lock(customer_id, token)
        except redis.RedisError as e:
            # the key still expires after ttl_ms
            logger.error(f"Cannot release ledger lock of customer {customer_id}: {e}")
            return
        if not released:
            logger.warning(f"Ledger lock of customer {customer_id} expired before release")
