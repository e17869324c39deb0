"""
Tests for CheckoutService: cart validation, pruning, per-seller partitioning
and the cart/lock side effects.
"""
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import update

from campus_market.data.models.cart import CartModel
from campus_market.data.models.order import OrderModel
from campus_market.domain.errors import (
    CheckoutInProgress,
    ConcurrentModification,
    EmptyCart,
    InvalidPickupDetails,
    MissingDeliveryInfo,
    NoValidItems,
    SelfPurchase,
)
from campus_market.domain.order_state import OrderStatus, PaymentStatus
from campus_market.services.checkout_service import CheckoutService
from campus_market.services.notification_service import NotificationService

from tests.conftest import BUYER_ID, SELLER_A, SELLER_B

CONTACT = {"full_name": "Somchai Buyer", "phone": "0812345678"}
PICKUP = {"location_name": "Library entrance"}
ADDRESS = {"address": "99 Phahonyothin Rd", "city": "Bangkok", "postal_code": "10900"}


@pytest.fixture
def service(db, item_client, lock_service, notifier):
    return CheckoutService(db, item_client=item_client, lock_service=lock_service, notifier=notifier)


def pickup_cash(service, **overrides):
    kwargs = dict(
        buyer_id=BUYER_ID,
        delivery_method="pickup",
        payment_method="cash",
        buyer_contact=CONTACT,
        pickup_details=PICKUP,
    )
    kwargs.update(overrides)
    return service.checkout(**kwargs)


class TestCheckoutPreconditions:

    def test_empty_cart_fails(self, service):
        with pytest.raises(EmptyCart):
            pickup_cash(service)

    def test_delivery_requires_shipping_address(self, service, item_client, put_in_cart, cart_lines):
        item_client.add(10, "Calculus textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)

        with pytest.raises(MissingDeliveryInfo):
            pickup_cash(service, delivery_method="delivery", pickup_details=None)

        assert cart_lines(BUYER_ID) == {10: 1}

    def test_pickup_requires_location_name(self, service, item_client, put_in_cart):
        item_client.add(10, "Calculus textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)

        with pytest.raises(MissingDeliveryInfo):
            pickup_cash(service, pickup_details={"location_name": "   "})

    def test_bad_coordinates_rejected(self, service, item_client, put_in_cart, db):
        item_client.add(10, "Calculus textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)

        with pytest.raises(InvalidPickupDetails):
            pickup_cash(
                service,
                pickup_details={"location_name": "Gate 1", "coordinates": {"lat": "north", "lng": 100.5}},
            )

        assert db.query(OrderModel).count() == 0

    def test_bad_preferred_time_rejected(self, service, item_client, put_in_cart):
        item_client.add(10, "Calculus textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)

        with pytest.raises(InvalidPickupDetails):
            pickup_cash(service, pickup_details={"location_name": "Gate 1", "preferred_time": "tomorrow-ish"})

    def test_self_purchase_aborts_and_leaves_cart_untouched(
        self, service, item_client, put_in_cart, cart_lines, db, notifier
    ):
        """Buying your own item is a hard error, even alongside valid and stale lines."""
        item_client.add(10, "Calculus textbook", 100, SELLER_A)
        item_client.add(11, "My own lamp", 80, BUYER_ID)
        item_client.add(12, "Sold bike", 2500, SELLER_B, availability_status="sold")
        put_in_cart(BUYER_ID, 10)
        put_in_cart(BUYER_ID, 11)
        put_in_cart(BUYER_ID, 12)

        with pytest.raises(SelfPurchase) as exc_info:
            pickup_cash(service)

        assert exc_info.value.item_id == 11
        assert db.query(OrderModel).count() == 0
        assert cart_lines(BUYER_ID) == {10: 1, 11: 1, 12: 1}
        assert notifier.sent == []


class TestCheckoutPruning:

    def test_only_invalid_items_fails_and_empties_cart(self, service, item_client, put_in_cart, cart_lines, db):
        item_client.add(10, "Sold bike", 2500, SELLER_A, availability_status="sold")
        item_client.add(11, "Pending coat", 200, SELLER_B, approval_status="pending")
        item_client.add(12, "Reserved chair", 300, SELLER_B, availability_status="reserved")
        put_in_cart(BUYER_ID, 10)
        put_in_cart(BUYER_ID, 11)
        put_in_cart(BUYER_ID, 12)
        put_in_cart(BUYER_ID, 13)  # unknown to the catalog

        with pytest.raises(NoValidItems) as exc_info:
            pickup_cash(service)

        assert sorted(exc_info.value.reasons) == sorted([
            "not available: Sold bike",
            "not approved: Pending coat",
            "not available: Reserved chair",
            "missing: item 13",
        ])
        assert cart_lines(BUYER_ID) == {}
        assert db.query(OrderModel).count() == 0

    def test_mixed_cart_creates_orders_from_valid_lines_only(self, service, item_client, put_in_cart, cart_lines):
        item_client.add(10, "Calculus textbook", 100, SELLER_A)
        item_client.add(11, "Sold bike", 2500, SELLER_A, availability_status="sold")
        item_client.add(12, "Pending coat", 200, SELLER_B, approval_status="pending")
        put_in_cart(BUYER_ID, 10, quantity=3)
        put_in_cart(BUYER_ID, 11)
        put_in_cart(BUYER_ID, 12)

        result = pickup_cash(service)

        assert len(result["removed"]) == 2
        assert len(result["orders"]) == 1
        assert [i.item_id for i in result["orders"][0].items] == [10]
        assert result["orders"][0].total_price == Decimal("300")
        assert cart_lines(BUYER_ID) == {}

    def test_example_cart_from_two_sellers_with_unapproved_item(
        self, service, item_client, put_in_cart, cart_lines
    ):
        item_client.add(10, "X", 100, SELLER_A)
        item_client.add(11, "Y", 50, SELLER_B, approval_status="pending")
        put_in_cart(BUYER_ID, 10, quantity=2)
        put_in_cart(BUYER_ID, 11)

        result = pickup_cash(service)

        [order] = result["orders"]
        assert order.seller_id == SELLER_A
        assert order.total_price == Decimal("200")
        assert order.status == OrderStatus.PENDING_SELLER_CONFIRMATION
        assert order.payment_status == PaymentStatus.NOT_REQUIRED
        assert result["removed"] == ["not approved: Y"]
        assert cart_lines(BUYER_ID) == {}


class TestCheckoutOrders:

    def test_partitions_by_seller(self, service, item_client, put_in_cart, notifier):
        item_client.add(10, "Textbook", 100, SELLER_A, image="/img/10.jpg")
        item_client.add(11, "Lamp", 120, SELLER_A)
        item_client.add(20, "Chair", 300, SELLER_B)
        put_in_cart(BUYER_ID, 10, quantity=2)
        put_in_cart(BUYER_ID, 20)
        put_in_cart(BUYER_ID, 11)

        result = pickup_cash(service)

        orders = {o.seller_id: o for o in result["orders"]}
        assert set(orders) == {SELLER_A, SELLER_B}
        assert sorted(i.item_id for i in orders[SELLER_A].items) == [10, 11]
        assert [i.item_id for i in orders[SELLER_B].items] == [20]
        assert orders[SELLER_A].total_price == Decimal("320")
        assert orders[SELLER_B].total_price == Decimal("300")
        for order in orders.values():
            assert order.total_price == sum(i.unit_price * i.quantity for i in order.items)

        assert notifier.titles_for(SELLER_A) == ["New Order Received"]
        assert notifier.titles_for(SELLER_B) == ["New Order Received"]

    def test_line_items_are_snapshots(self, service, item_client, put_in_cart, db):
        item_client.add(10, "Textbook", 100, SELLER_A, image="/img/10.jpg")
        put_in_cart(BUYER_ID, 10)

        [order] = pickup_cash(service)["orders"]

        # the catalog changes afterwards
        item_client.add(10, "Textbook (2nd ed.)", 999, SELLER_A)
        db.expire_all()
        stored = db.get(OrderModel, order.id)

        assert stored.items[0].title == "Textbook"
        assert stored.items[0].unit_price == Decimal("100")
        assert stored.items[0].image == "/img/10.jpg"
        assert stored.total_price == Decimal("100")

    @pytest.mark.parametrize("method", ["transfer", "promptpay"])
    def test_non_cash_orders_start_with_pending_payment(self, service, item_client, put_in_cart, method):
        item_client.add(10, "Textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)

        [order] = pickup_cash(service, payment_method=method)["orders"]

        assert order.payment_status == PaymentStatus.PENDING

    def test_delivery_order_stores_address_and_no_pickup(self, service, item_client, put_in_cart):
        item_client.add(10, "Textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)

        [order] = pickup_cash(
            service,
            delivery_method="delivery",
            shipping_address=ADDRESS,
            pickup_details={"location_name": "ignored"},
        )["orders"]

        assert order.shipping_address == ADDRESS
        assert order.pickup_details is None

    def test_pickup_details_are_normalized(self, service, item_client, put_in_cart):
        item_client.add(10, "Textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)

        [order] = pickup_cash(
            service,
            pickup_details={
                "location_name": "  Gate 1 ",
                "note": "  ",
                "coordinates": {"lat": "13.84", "lng": 100.57},
                "preferred_time": "2026-11-02T10:30:00Z",
            },
        )["orders"]

        assert order.pickup_details == {
            "location_name": "Gate 1",
            "coordinates": {"lat": 13.84, "lng": 100.57},
            "preferred_time": "2026-11-02T10:30:00+00:00",
        }

    def test_catalog_read_once_per_checkout(self, service, item_client, put_in_cart):
        item_client.add(10, "Textbook", 100, SELLER_A)
        item_client.add(20, "Chair", 300, SELLER_B)
        put_in_cart(BUYER_ID, 10)
        put_in_cart(BUYER_ID, 20)

        pickup_cash(service)

        assert item_client.batch_calls == 1

    def test_notification_failure_does_not_fail_checkout(self, db, item_client, lock_service, put_in_cart):
        item_client.add(10, "Textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)
        service = CheckoutService(
            db,
            item_client=item_client,
            lock_service=lock_service,
            notifier=NotificationService(),
        )

        with patch(
            "campus_market.services.notification_service.send_notification_task.delay",
            side_effect=ConnectionError("broker down"),
        ):
            result = pickup_cash(service)

        assert len(result["orders"]) == 1
        assert db.query(OrderModel).count() == 1


class TestCheckoutConcurrency:

    def test_lock_held_by_another_checkout(self, service, item_client, put_in_cart, lock_service, cart_lines):
        item_client.add(10, "Textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)
        lock_service.acquire_checkout_lock(BUYER_ID)

        with pytest.raises(CheckoutInProgress):
            pickup_cash(service)

        assert cart_lines(BUYER_ID) == {10: 1}

    def test_lock_released_after_failure(self, service, lock_service):
        with pytest.raises(EmptyCart):
            pickup_cash(service)

        assert lock_service.held == {}
        assert lock_service.released == [BUYER_ID]

    def test_cart_changed_mid_checkout_rolls_back_orders(self, service, item_client, put_in_cart, db, cart_lines):
        """A cart write between the read and the clear must not leave orders behind."""
        item_client.add(10, "Textbook", 100, SELLER_A)
        put_in_cart(BUYER_ID, 10)

        original_lookup = item_client.lookup_many

        def lookup_and_race(item_ids):
            records = original_lookup(item_ids)
            db.execute(
                update(CartModel)
                .where(CartModel.buyer_id == BUYER_ID)
                .values(version=99)
                .execution_options(synchronize_session=False)
            )
            return records

        item_client.lookup_many = lookup_and_race

        with pytest.raises(ConcurrentModification):
            pickup_cash(service)

        assert db.query(OrderModel).count() == 0
        assert cart_lines(BUYER_ID) == {10: 1}
