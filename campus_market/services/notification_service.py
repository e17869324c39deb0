# campus_market/services/notification_service.py
from campus_market.celery_worker import celery_app
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Fire-and-forget notifications.
    Delivery happens in a Celery worker; a failure to enqueue is logged and
    never propagates into the order transaction that triggered it.
    """

    def send(self, user_id: int, kind: str, title: str, message: str, link: str | None = None) -> None:
        try:
            send_notification_task.delay(user_id, kind, title, message, link)
        except Exception as e:
            logger.error(f"Failed to enqueue notification '{title}' for user {user_id}: {e}")
            return
        logger.info(f"Notification '{title}' queued for user {user_id}")


@celery_app.task(name="campus_market.services.notification_service.send_notification_task")
def send_notification_task(user_id: int, kind: str, title: str, message: str, link: str | None = None):
    """
    Celery task - the real delivery channel (in-app inbox, email, push) sits
    behind the notification subsystem; here we only log the hand-off.
    """
    logger.info(f"[NOTIFICATION] User {user_id} ({kind}): {title} - {message} {link or ''}".rstrip())

    return {"user_id": user_id, "kind": kind, "title": title, "status": "sent"}
