# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order notifications, processed asynchronously by Celery.
    """

    @staticmethod
    def send_order_confirmation(order_id: int, customer_email: str | None):
        try:
            send_order_confirmation_task.delay(order_id, customer_email)
        except Exception as e:
            # the order is committed already; a lost notification must not fail the webhook
            logger.warning(f"Could not queue confirmation for order {order_id}: {e}")


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(order_id: int, customer_email: str | None):
    """
    Celery task. Logs only; a mail provider would be called here.
    """
    logger.info(f"[NOTIFICATION] Order {order_id} confirmed for {customer_email or 'unknown customer'}")
    return {"order_id": order_id, "customer_email": customer_email, "status": "sent"}
