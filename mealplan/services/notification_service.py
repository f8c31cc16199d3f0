# mealplan/services/notification_service.py
from kombu.exceptions import OperationalError

from mealplan.celery_worker import celery_app
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Customer notifications, processed asynchronously by Celery.
    Called after the ledger change is committed; a broker outage is logged
    and does not undo the approval.
    """

    def notify_order_approved(self, user_id: int, order_id: int):
        self._enqueue(send_order_approved_task, user_id, order_id)

    def notify_plan_activated(self, user_id: int, end_date_iso: str):
        self._enqueue(send_plan_activated_task, user_id, end_date_iso)

    @staticmethod
    def _enqueue(task, *args):
        try:
            task.delay(*args)
        except OperationalError:
            logger.exception(f"Could not queue {task.name} for {args}")


@celery_app.task(name="mealplan.services.notification_service.send_order_approved_task")
def send_order_approved_task(user_id: int, order_id: int):
    """
    Delivery channel (SMS, push, e-mail) sits behind this task; for now it logs.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} has been approved")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="mealplan.services.notification_service.send_plan_activated_task")
def send_plan_activated_task(user_id: int, end_date_iso: str):
    logger.info(f"[NOTIFICATION] User {user_id}: plan active until {end_date_iso}")
    return {"user_id": user_id, "end_date": end_date_iso, "status": "sent"}
