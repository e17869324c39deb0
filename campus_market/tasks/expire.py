# campus_market/tasks/expire.py
from datetime import datetime, timezone, timedelta

from sqlalchemy.orm import Session

from campus_market.celery_worker import celery_app
from campus_market.data.database import SessionLocal
from campus_market.repos.cart_repo import CartRepo
from campus_market.utils.settings import CART_INACTIVITY_SECONDS
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)


def expire_inactive_carts(db: Session, now: datetime | None = None) -> int:
    """Empty carts untouched for CART_INACTIVITY_SECONDS. The cart rows stay."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=CART_INACTIVITY_SECONDS)

    repo = CartRepo(db)
    carts = repo.find_inactive_carts(cutoff)
    logger.info(f"Found {len(carts)} inactive carts to empty")

    expired = 0
    for cart in carts:
        repo.delete_cart_items(cart.id)
        # a buyer touching the cart meanwhile wins, we skip it
        if repo.update_cart_version(cart.id, cart.version) == 0:
            logger.warning(f"Cart {cart.id} changed while expiring, skipping")
            repo.rollback()
            continue
        repo.commit()
        expired += 1

    return expired


@celery_app.task(name="campus_market.tasks.expire.expire_inactive_carts_task")
def expire_inactive_carts_task():
    logger.info("Expire inactive carts task started")

    db = SessionLocal()
    try:
        return expire_inactive_carts(db)
    finally:
        db.close()
