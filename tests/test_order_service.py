"""
Tests for OrderService: seller confirm / reject, the buyer's payment notice
and the order read models.
"""
from decimal import Decimal

import pytest

from campus_market.data.models.order import OrderModel
from campus_market.domain.errors import (
    AccessDenied,
    InvalidPaymentState,
    InvalidState,
    MissingReason,
    NotConfirmed,
    OrderNotFound,
)
from campus_market.domain.order_state import OrderStatus, PaymentStatus
from campus_market.services.order_service import OrderService

from tests.conftest import BUYER_ID, SELLER_A, SELLER_B

STRANGER = 999


@pytest.fixture
def service(db, notifier):
    return OrderService(db, notifier)


def stored(db, order_id) -> OrderModel:
    db.expire_all()
    return db.get(OrderModel, order_id)


class TestConfirmOrder:

    def test_seller_confirms_pending_order(self, service, make_order, notifier):
        order_id = make_order()

        result = service.confirm_order(order_id, SELLER_A)

        assert result.status == OrderStatus.CONFIRMED
        assert result.confirmed_at is not None
        assert result.payment_status == PaymentStatus.NOT_REQUIRED
        assert notifier.titles_for(BUYER_ID) == ["Order Confirmed"]

    def test_confirm_leaves_pending_payment_untouched(self, service, make_order):
        order_id = make_order(payment_method="transfer", payment_status="pending")

        result = service.confirm_order(order_id, SELLER_A)

        assert result.payment_status == PaymentStatus.PENDING

    def test_only_the_seller_may_confirm(self, service, make_order, db):
        order_id = make_order()

        with pytest.raises(AccessDenied):
            service.confirm_order(order_id, BUYER_ID)
        with pytest.raises(AccessDenied):
            service.confirm_order(order_id, SELLER_B)

        assert stored(db, order_id).status == OrderStatus.PENDING_SELLER_CONFIRMATION.value

    def test_unknown_order(self, service):
        with pytest.raises(OrderNotFound):
            service.confirm_order(12345, SELLER_A)

    @pytest.mark.parametrize("status", ["confirmed", "rejected", "completed", "cancelled"])
    def test_only_pending_orders_can_be_confirmed(self, service, make_order, status, notifier):
        order_id = make_order(status=status)

        with pytest.raises(InvalidState):
            service.confirm_order(order_id, SELLER_A)

        assert notifier.sent == []

    def test_confirm_loses_race_against_reject(self, service, make_order, db):
        """The in-memory check passes but the conditional update finds the order already rejected."""
        order_id = make_order()
        order = db.get(OrderModel, order_id)
        db.execute(
            OrderModel.__table__.update()
            .where(OrderModel.__table__.c.id == order_id)
            .values(status="rejected")
        )
        db.commit()

        with pytest.raises(InvalidState) as exc_info:
            service._transition_from_pending(order, {"status": "confirmed"})

        assert exc_info.value.current_state == "rejected"


class TestRejectOrder:

    def test_seller_rejects_with_reason(self, service, make_order, notifier):
        order_id = make_order()

        result = service.reject_order(order_id, SELLER_A, "  Item was damaged  ")

        assert result.status == OrderStatus.REJECTED
        assert result.rejection_reason == "Item was damaged"
        assert result.rejected_at is not None
        assert notifier.titles_for(BUYER_ID) == ["Order Rejected"]

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reason_is_required(self, service, make_order, reason, db):
        order_id = make_order()

        with pytest.raises(MissingReason):
            service.reject_order(order_id, SELLER_A, reason)

        assert stored(db, order_id).status == OrderStatus.PENDING_SELLER_CONFIRMATION.value

    def test_access_checked_before_reason(self, service, make_order):
        order_id = make_order()

        with pytest.raises(AccessDenied):
            service.reject_order(order_id, STRANGER, "")

    def test_reject_after_confirm_fails_and_order_stays_confirmed(self, service, make_order, db):
        order_id = make_order()
        service.confirm_order(order_id, SELLER_A)

        with pytest.raises(InvalidState):
            service.reject_order(order_id, SELLER_A, "Changed my mind")

        order = stored(db, order_id)
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.rejection_reason is None


class TestSubmitPaymentNotice:

    def test_buyer_submits_payment_once(self, service, make_order, notifier, db):
        order_id = make_order(payment_method="transfer", payment_status="pending", status="confirmed")

        result = service.submit_payment_notice(order_id, BUYER_ID)

        assert result.payment_status == PaymentStatus.PAYMENT_SUBMITTED
        assert result.payment_submitted_at is not None
        assert notifier.titles_for(SELLER_A) == ["Buyer submitted payment"]

        with pytest.raises(InvalidPaymentState):
            service.submit_payment_notice(order_id, BUYER_ID)

        assert stored(db, order_id).payment_status == PaymentStatus.PAYMENT_SUBMITTED.value
        assert len(notifier.sent) == 1

    def test_allowed_while_awaiting_gateway_payment(self, service, make_order):
        order_id = make_order(payment_method="promptpay", payment_status="awaiting_payment", status="confirmed")

        result = service.submit_payment_notice(order_id, BUYER_ID)

        assert result.payment_status == PaymentStatus.PAYMENT_SUBMITTED

    def test_cash_orders_need_no_payment_notice(self, service, make_order):
        order_id = make_order(status="confirmed")

        with pytest.raises(InvalidPaymentState):
            service.submit_payment_notice(order_id, BUYER_ID)

    def test_order_must_be_confirmed_first(self, service, make_order):
        order_id = make_order(payment_method="transfer", payment_status="pending")

        with pytest.raises(NotConfirmed):
            service.submit_payment_notice(order_id, BUYER_ID)

    def test_paid_orders_cannot_be_resubmitted(self, service, make_order):
        order_id = make_order(payment_method="transfer", payment_status="paid", status="confirmed")

        with pytest.raises(InvalidPaymentState):
            service.submit_payment_notice(order_id, BUYER_ID)

    def test_only_the_buyer_may_submit(self, service, make_order):
        order_id = make_order(payment_method="transfer", payment_status="pending", status="confirmed")

        with pytest.raises(AccessDenied):
            service.submit_payment_notice(order_id, SELLER_A)


class TestOrderQueries:

    def test_either_party_can_read_the_order(self, service, make_order):
        order_id = make_order()

        assert service.get_order(order_id, BUYER_ID).id == order_id
        assert service.get_order(order_id, SELLER_A).id == order_id
        with pytest.raises(AccessDenied):
            service.get_order(order_id, STRANGER)

    def test_buyer_listing_with_pagination_and_counts(self, service, make_order):
        for _ in range(3):
            make_order()
        make_order(status="confirmed")
        make_order(buyer_id=STRANGER)

        page = service.list_buyer_orders(BUYER_ID, page=2, limit=3)

        assert len(page["orders"]) == 1
        assert page["pagination"] == {"page": 2, "limit": 3, "total": 4, "total_pages": 2}
        assert page["status_counts"]["pending_seller_confirmation"] == 3
        assert page["status_counts"]["confirmed"] == 1
        assert page["status_counts"]["cancelled"] == 0

    def test_status_filter_and_unknown_status_ignored(self, service, make_order):
        make_order()
        make_order(status="confirmed")

        confirmed = service.list_seller_orders(SELLER_A, status="confirmed")
        everything = service.list_seller_orders(SELLER_A, status="bogus")

        assert [o.status for o in confirmed["orders"]] == [OrderStatus.CONFIRMED]
        assert everything["pagination"]["total"] == 2

    def test_limit_is_clamped(self, service, make_order):
        make_order()

        page = service.list_seller_orders(SELLER_A, limit=500)

        assert page["pagination"]["limit"] == 50

    def test_empty_listing(self, service):
        page = service.list_seller_orders(SELLER_B)

        assert page["orders"] == []
        assert page["pagination"]["total_pages"] == 0

    def test_seller_stats(self, service, make_order):
        make_order()
        make_order(status="completed", total_price=Decimal("150.00"))
        make_order(status="completed", total_price=Decimal("50.50"))
        make_order(status="rejected", total_price=Decimal("999.00"))
        make_order(seller_id=SELLER_B, status="completed")

        stats = service.seller_stats(SELLER_A)

        assert stats["total_orders"] == 4
        assert stats["pending_orders"] == 1
        assert stats["total_revenue"] == Decimal("200.50")
