# storefront/tasks/expire.py
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.cart_repo import CartRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def purge_expired_carts(db: Session, now: datetime | None = None) -> int:
    """Delete carts whose last write is older than the retention window."""
    now = now or datetime.now(timezone.utc)
    deleted = CartRepo(db).delete_expired(now)
    logger.info(f"Purged {deleted} expired carts")
    return deleted


@celery_app.task(name="storefront.tasks.expire.purge_expired_carts_task")
def purge_expired_carts_task():
    logger.info("Purge expired carts task started")

    db = SessionLocal()
    try:
        return purge_expired_carts(db)
    finally:
        db.close()
