# campus_market/services/order_service.py
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.orm import Session

from campus_market.data.models.order import OrderModel
from campus_market.domain.errors import (
    AccessDenied,
    InvalidPaymentState,
    InvalidState,
    MissingReason,
    NotConfirmed,
    OrderNotFound,
)
from campus_market.domain.order_state import (
    OPEN_PAYMENT_STATUSES,
    OrderStatus,
    PaymentStatus,
    requires_payment,
)
from campus_market.domain.schemas import OrderOut
from campus_market.repos.order_repo import OrderRepo
from campus_market.services.notification_service import NotificationService
from campus_market.utils.settings import ORDERS_PAGE_LIMIT_MAX
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)

BUYER = "buyer"
SELLER = "seller"


def load_order(repo: OrderRepo, order_id: int) -> OrderModel:
    order = repo.get_order(order_id)
    if not order:
        raise OrderNotFound(order_id)
    return order


def ensure_party(order: OrderModel, user_id: int, role: str | None = None) -> None:
    """role=None accepts either side of the order."""
    is_buyer = order.buyer_id == user_id
    is_seller = order.seller_id == user_id

    allowed = {
        None: is_buyer or is_seller,
        BUYER: is_buyer,
        SELLER: is_seller,
    }[role]

    if not allowed:
        raise AccessDenied(order.id, user_id)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """
    Order lifecycle owned by the seller side plus the read models.

    pending_seller_confirmation -> confirmed | rejected
    Every transition is a conditional UPDATE on the expected status, so two
    concurrent seller actions cannot both win.
    """

    def __init__(self, db: Session, notifier: NotificationService):
        self.repo = OrderRepo(db)
        self.notifier = notifier

    # query
    def get_order(self, order_id: int, requester_id: int) -> OrderOut:
        order = load_order(self.repo, order_id)
        ensure_party(order, requester_id)
        return OrderOut.model_validate(order)

    def list_buyer_orders(
        self,
        buyer_id: int,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        return self._list(status, page, limit, buyer_id=buyer_id)

    def list_seller_orders(
        self,
        seller_id: int,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        return self._list(status, page, limit, seller_id=seller_id)

    def _list(self, status, page, limit, **party) -> Dict[str, Any]:
        # unknown status filters are ignored rather than rejected
        valid_statuses = {s.value for s in OrderStatus}
        status = status if status in valid_statuses else None

        page = max(int(page or 1), 1)
        limit = min(max(int(limit or 10), 1), ORDERS_PAGE_LIMIT_MAX)

        orders, total = self.repo.list_orders(
            status=status,
            offset=(page - 1) * limit,
            limit=limit,
            **party,
        )

        counts = self.repo.count_by_status(**party)

        return {
            "orders": [OrderOut.model_validate(o) for o in orders],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
            "status_counts": {s.value: counts.get(s.value, 0) for s in OrderStatus},
        }

    def seller_stats(self, seller_id: int) -> Dict[str, Any]:
        counts = self.repo.count_by_status(seller_id=seller_id)
        revenue = self.repo.revenue(seller_id, OrderStatus.COMPLETED.value)

        return {
            "total_orders": sum(counts.values()),
            "pending_orders": counts.get(OrderStatus.PENDING_SELLER_CONFIRMATION.value, 0),
            "total_revenue": Decimal(str(revenue or 0)),
        }

    # commands
    def confirm_order(self, order_id: int, seller_id: int) -> OrderOut:
        order = load_order(self.repo, order_id)
        ensure_party(order, seller_id, SELLER)

        self._transition_from_pending(
            order,
            {"status": OrderStatus.CONFIRMED.value, "confirmed_at": utcnow()},
        )
        logger.info(f"Order {order_id} confirmed by seller {seller_id} (payment: {order.payment_method})")

        self.notifier.send(
            order.buyer_id,
            "order",
            "Order Confirmed",
            "Your order has been confirmed by the seller!",
            f"/order/{order_id}",
        )
        return OrderOut.model_validate(load_order(self.repo, order_id))

    def reject_order(self, order_id: int, seller_id: int, reason: str | None) -> OrderOut:
        order = load_order(self.repo, order_id)
        ensure_party(order, seller_id, SELLER)

        reason = (reason or "").strip()
        if not reason:
            raise MissingReason(order_id)

        self._transition_from_pending(
            order,
            {
                "status": OrderStatus.REJECTED.value,
                "rejected_at": utcnow(),
                "rejection_reason": reason,
            },
        )
        logger.info(f"Order {order_id} rejected by seller {seller_id}: {reason}")

        self.notifier.send(
            order.buyer_id,
            "order",
            "Order Rejected",
            f"Your order has been rejected. Reason: {reason}",
            f"/order/{order_id}",
        )
        return OrderOut.model_validate(load_order(self.repo, order_id))

    def submit_payment_notice(self, order_id: int, buyer_id: int) -> OrderOut:
        """Buyer tells the seller the transfer / PromptPay payment has been made."""
        order = load_order(self.repo, order_id)
        ensure_party(order, buyer_id, BUYER)

        if not requires_payment(order.payment_method):
            raise InvalidPaymentState(
                order_id,
                order.payment_status,
                "Payment confirmation is not required for this order",
            )

        if order.status != OrderStatus.CONFIRMED.value:
            raise NotConfirmed(order_id, order.status)

        if order.payment_status not in OPEN_PAYMENT_STATUSES:
            raise InvalidPaymentState(
                order_id,
                order.payment_status,
                "Payment has already been submitted for this order",
            )

        rowcount = self.repo.update_where(
            order_id,
            [
                OrderModel.status == OrderStatus.CONFIRMED.value,
                OrderModel.payment_status.in_(OPEN_PAYMENT_STATUSES),
            ],
            {
                "payment_status": PaymentStatus.PAYMENT_SUBMITTED.value,
                "payment_submitted_at": utcnow(),
            },
        )
        if rowcount == 0:
            self.repo.rollback()
            current = load_order(self.repo, order_id)
            if current.status != OrderStatus.CONFIRMED.value:
                raise NotConfirmed(order_id, current.status)
            raise InvalidPaymentState(
                order_id,
                current.payment_status,
                "Payment has already been submitted for this order",
            )
        self.repo.commit()

        logger.info(
            f"Buyer {buyer_id} submitted payment for order {order_id} "
            f"via {order.payment_method}, amount {order.total_price}"
        )

        self.notifier.send(
            order.seller_id,
            "order",
            "Buyer submitted payment",
            "The buyer has submitted payment for an order. Please verify and update the status.",
            f"/seller/orders/{order_id}",
        )
        return OrderOut.model_validate(load_order(self.repo, order_id))

    def _transition_from_pending(self, order: OrderModel, values: Dict[str, Any]) -> None:
        required = OrderStatus.PENDING_SELLER_CONFIRMATION.value

        if order.status != required:
            raise InvalidState(order.id, order.status, required)

        rowcount = self.repo.update_where(order.id, [OrderModel.status == required], values)
        if rowcount == 0:
            # lost the race against another seller action
            self.repo.rollback()
            current = load_order(self.repo, order.id)
            raise InvalidState(order.id, current.status, required)

        self.repo.commit()
