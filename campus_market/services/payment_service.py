# campus_market/services/payment_service.py
from sqlalchemy.orm import Session

from campus_market.data.models.order import OrderModel
from campus_market.domain.errors import (
    InvalidPaymentState,
    NotConfirmed,
    NotSucceeded,
    ReferenceMismatch,
)
from campus_market.domain.order_state import (
    OPEN_PAYMENT_STATUSES,
    SETTLEABLE_PAYMENT_STATUSES,
    OrderStatus,
    PaymentStatus,
    requires_payment,
)
from campus_market.domain.schemas import OrderOut
from campus_market.repos.order_repo import OrderRepo
from campus_market.services.notification_service import NotificationService
from campus_market.services.order_service import BUYER, ensure_party, load_order, utcnow
from campus_market.services.payment_gateway import PaymentGatewayClient, SUCCEEDED
from campus_market.utils.settings import CURRENCY
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentService:
    """
    Gateway-driven payment for transfer / PromptPay orders.

    pending | awaiting_payment | payment_submitted -> paid

    Confirming an order that is already paid under the same reference is a
    no-op success: gateways redeliver callbacks, and the second delivery must
    neither fail nor notify twice.
    """

    def __init__(self, db: Session, gateway: PaymentGatewayClient, notifier: NotificationService):
        self.repo = OrderRepo(db)
        self.gateway = gateway
        self.notifier = notifier

    def create_payment_intent(self, order_id: int, buyer_id: int) -> OrderOut:
        order = load_order(self.repo, order_id)
        ensure_party(order, buyer_id, BUYER)

        if not requires_payment(order.payment_method):
            raise InvalidPaymentState(
                order_id,
                order.payment_status,
                "Payment is not required for this order",
            )

        if order.status != OrderStatus.CONFIRMED.value:
            raise NotConfirmed(order_id, order.status)

        if order.payment_status not in OPEN_PAYMENT_STATUSES:
            raise InvalidPaymentState(order_id, order.payment_status)

        reference = self.gateway.create_intent(order.total_price, CURRENCY)
        logger.info(f"Payment intent {reference} created for order {order_id} ({order.total_price} {CURRENCY})")

        rowcount = self.repo.update_where(
            order_id,
            [
                OrderModel.status == OrderStatus.CONFIRMED.value,
                OrderModel.payment_status.in_(OPEN_PAYMENT_STATUSES),
            ],
            {
                "payment_intent_ref": reference,
                "payment_status": PaymentStatus.AWAITING_PAYMENT.value,
            },
        )
        if rowcount == 0:
            self.repo.rollback()
            current = load_order(self.repo, order_id)
            raise InvalidPaymentState(order_id, current.payment_status)

        self.repo.commit()
        return OrderOut.model_validate(load_order(self.repo, order_id))

    def confirm_payment(self, order_id: int, gateway_reference: str) -> OrderOut:
        order = load_order(self.repo, order_id)

        if not order.payment_intent_ref or order.payment_intent_ref != gateway_reference:
            raise ReferenceMismatch(order_id, gateway_reference)

        if order.payment_status == PaymentStatus.PAID.value:
            logger.info(f"Order {order_id} already paid with {gateway_reference}, nothing to do")
            return OrderOut.model_validate(order)

        if order.payment_status not in SETTLEABLE_PAYMENT_STATUSES:
            raise InvalidPaymentState(order_id, order.payment_status)

        gateway_status = self.gateway.confirm(gateway_reference)
        if gateway_status != SUCCEEDED:
            logger.warning(f"Gateway reports {gateway_status} for order {order_id} ({gateway_reference})")
            raise NotSucceeded(order_id, gateway_status)

        rowcount = self.repo.update_where(
            order_id,
            [
                OrderModel.payment_intent_ref == gateway_reference,
                OrderModel.payment_status.in_(SETTLEABLE_PAYMENT_STATUSES),
            ],
            {"payment_status": PaymentStatus.PAID.value, "paid_at": utcnow()},
        )
        if rowcount == 0:
            self.repo.rollback()
            current = load_order(self.repo, order_id)
            if current.payment_status == PaymentStatus.PAID.value:
                # a concurrent callback got there first
                return OrderOut.model_validate(current)
            raise InvalidPaymentState(order_id, current.payment_status)

        self.repo.commit()
        logger.info(f"Order {order_id} paid ({order.total_price} {CURRENCY}, ref {gateway_reference})")

        self.notifier.send(
            order.seller_id,
            "order",
            "Payment received",
            f"Payment of {order.total_price} {CURRENCY} has been confirmed.",
            f"/seller/orders/{order_id}",
        )
        self.notifier.send(
            order.buyer_id,
            "order",
            "Payment confirmed",
            "Your payment has been confirmed.",
            f"/order/{order_id}",
        )
        return OrderOut.model_validate(load_order(self.repo, order_id))
