# mealplan/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import requests
import redis

from mealplan.utils.settings import LEDGER_WRITE_ATTEMPTS


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


def ledger_write_retry(conflict_type):
    """Retry a whole read-modify-write when the optimistic version check loses."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(LEDGER_WRITE_ATTEMPTS),
        wait=wait_exponential(multiplier=0.02, min=0.0, max=0.2),
        retry=retry_if_exception_type(conflict_type),
    )
