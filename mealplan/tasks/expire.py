# mealplan/tasks/expire.py
from datetime import datetime

from mealplan.celery_worker import celery_app
from mealplan.data.database import SessionLocal
from mealplan.repos.cart_repo import CartRepo
from mealplan.utils.clock import utcnow
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)


def expire_carts(db, now: datetime | None = None) -> int:
    """Mark ACTIVE carts past their TTL as EXPIRED; returns how many were closed."""
    now = now or utcnow()
    repo = CartRepo(db)

    carts = repo.list_expired(now)
    logger.info(f"Found {len(carts)} carts to expire")

    expired = 0
    for cart in carts:
        rowcount = repo.update_cart_version(cart.id, cart.version, {
            "status": "EXPIRED",
            "version": cart.version + 1,
        })
        if rowcount == 0:
            # customer touched the cart meanwhile, its TTL moved
            logger.info(f"Cart {cart.id} changed while expiring, skipped")
            continue
        repo.delete_items(cart.id)
        expired += 1

    repo.commit()
    return expired


@celery_app.task(name="mealplan.tasks.expire.expire_carts_task")
def expire_carts_task():
    logger.info("Expire carts task started")

    db = SessionLocal()
    try:
        return expire_carts(db)
    finally:
        db.close()
