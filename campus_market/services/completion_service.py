# campus_market/services/completion_service.py
from sqlalchemy.orm import Session

from campus_market.data.models.order import OrderModel
from campus_market.domain.errors import (
    AlreadyConfirmed,
    InvalidPaymentState,
    InvalidState,
    NotPickup,
)
from campus_market.domain.order_state import (
    DeliveryMethod,
    OrderStatus,
    is_fulfilled,
    payment_settled_enough_for_handover,
)
from campus_market.domain.schemas import OrderOut
from campus_market.repos.order_repo import OrderRepo
from campus_market.services.notification_service import NotificationService
from campus_market.services.order_service import BUYER, SELLER, ensure_party, load_order, utcnow
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)


class CompletionService:
    """
    Dual confirmation: buyer_received AND seller_delivered.

    Each flag is write-once and only while the order is confirmed. After every
    flag write the same transaction re-reads both flags and, when is_fulfilled()
    holds, runs
        UPDATE orders SET status='completed'
        WHERE id=:id AND status='confirmed' AND buyer_received AND seller_delivered
    The flag UPDATE holds the row lock until commit, so whichever party writes
    second sees both flags and completes the order, exactly once.
    """

    def __init__(self, db: Session, notifier: NotificationService):
        self.repo = OrderRepo(db)
        self.notifier = notifier

    def mark_received(self, order_id: int, buyer_id: int) -> OrderOut:
        order = load_order(self.repo, order_id)
        ensure_party(order, buyer_id, BUYER)

        self._require_confirmed(order)

        if order.delivery_method != DeliveryMethod.PICKUP.value:
            raise NotPickup(order_id)

        if order.buyer_received:
            raise AlreadyConfirmed(order_id, BUYER)

        self._set_flag(order, BUYER, {"buyer_received": True, "buyer_received_at": utcnow()})

        pickup = order.pickup_details or {}
        logger.info(
            f"Buyer {buyer_id} received order {order_id} at "
            f"{pickup.get('location_name') or pickup.get('address') or 'pickup point'}"
        )
        return self._reconcile(order_id)

    def mark_delivered(self, order_id: int, seller_id: int) -> OrderOut:
        order = load_order(self.repo, order_id)
        ensure_party(order, seller_id, SELLER)

        self._require_confirmed(order)

        if order.delivery_method != DeliveryMethod.PICKUP.value:
            raise NotPickup(order_id)

        if order.seller_delivered:
            raise AlreadyConfirmed(order_id, SELLER)

        if not payment_settled_enough_for_handover(order.payment_method, order.payment_status):
            raise InvalidPaymentState(
                order_id,
                order.payment_status,
                "Buyer has not completed payment yet",
            )

        self._set_flag(order, SELLER, {"seller_delivered": True, "seller_delivered_at": utcnow()})

        logger.info(f"Seller {seller_id} delivered order {order_id}")
        return self._reconcile(order_id)

    @staticmethod
    def _require_confirmed(order: OrderModel) -> None:
        if order.status != OrderStatus.CONFIRMED.value:
            raise InvalidState(order.id, order.status, OrderStatus.CONFIRMED.value)

    def _set_flag(self, order: OrderModel, party: str, values: dict) -> None:
        flag = OrderModel.buyer_received if party == BUYER else OrderModel.seller_delivered

        rowcount = self.repo.update_where(
            order.id,
            [OrderModel.status == OrderStatus.CONFIRMED.value, flag.is_(False)],
            values,
        )
        if rowcount == 0:
            self.repo.rollback()
            current = load_order(self.repo, order.id)
            if current.status != OrderStatus.CONFIRMED.value:
                raise InvalidState(order.id, current.status, OrderStatus.CONFIRMED.value)
            raise AlreadyConfirmed(order.id, party)

    def _reconcile(self, order_id: int) -> OrderOut:
        """Promote confirmed -> completed when both flags hold; commits the flag write too."""
        # same transaction, so this read sees the flag we just wrote
        order = load_order(self.repo, order_id)

        completed = False
        if is_fulfilled(order.buyer_received, order.seller_delivered):
            rowcount = self.repo.update_where(
                order_id,
                [
                    OrderModel.status == OrderStatus.CONFIRMED.value,
                    OrderModel.buyer_received.is_(True),
                    OrderModel.seller_delivered.is_(True),
                ],
                {"status": OrderStatus.COMPLETED.value, "completed_at": utcnow()},
            )
            completed = rowcount == 1

        self.repo.commit()
        order = load_order(self.repo, order_id)

        if completed:
            logger.info(f"Order {order_id} completed, total {order.total_price}")

            self.notifier.send(
                order.buyer_id,
                "order",
                "Order Completed",
                "Your order has been completed!",
                f"/order/{order_id}",
            )
            self.notifier.send(
                order.seller_id,
                "order",
                "Order Completed",
                "The order has been completed!",
                f"/seller/orders/{order_id}",
            )

        return OrderOut.model_validate(order)
