# campus_market/services/checkout_service.py
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from campus_market.data.models.cart import CartModel
from campus_market.data.models.cart_item import CartItemModel
from campus_market.data.models.order import OrderModel
from campus_market.data.models.order_line_item import OrderLineItemModel
from campus_market.domain.errors import (
    CheckoutInProgress,
    ConcurrentModification,
    EmptyCart,
    MissingDeliveryInfo,
    NoValidItems,
    SelfPurchase,
    ValidationFailed,
)
from campus_market.domain.order_state import (
    DeliveryMethod,
    OrderStatus,
    PaymentMethod,
    initial_payment_status,
)
from campus_market.domain.schemas import OrderOut
from campus_market.domain.validation import normalize_pickup_details, require_delivery_info
from campus_market.repos.cart_repo import CartRepo
from campus_market.repos.order_repo import OrderRepo
from campus_market.services.item_client import ItemClient
from campus_market.services.lock_service import LockService
from campus_market.services.notification_service import NotificationService
from campus_market.utils.settings import CURRENCY
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)

APPROVED = "approved"
AVAILABLE = "available"


def _as_dict(value) -> Dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return dict(value)


def _same_user(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _enum_value(enum_cls, value) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationFailed(f"Unsupported {enum_cls.__name__}: {value}")


def classify_lines(
    lines: List[CartItemModel],
    records: Dict[int, dict],
) -> Tuple[Dict[int, List[Tuple[CartItemModel, dict]]], List[int], List[str]]:
    """
    Split cart lines into per-seller partitions of valid lines and a list of
    invalid ones with a human-readable reason each.

    A line is valid only when the item exists, is approved and is available.
    """
    by_seller: Dict[int, List[Tuple[CartItemModel, dict]]] = {}
    invalid_ids: List[int] = []
    reasons: List[str] = []

    for line in lines:
        record = records.get(line.item_id)

        if not record or record.get("owner_id") is None:
            invalid_ids.append(line.item_id)
            reasons.append(f"missing: item {line.item_id}")
            continue

        if record.get("approval_status") != APPROVED:
            invalid_ids.append(line.item_id)
            reasons.append(f"not approved: {record['title']}")
            continue

        if record.get("availability_status") != AVAILABLE:
            invalid_ids.append(line.item_id)
            reasons.append(f"not available: {record['title']}")
            continue

        by_seller.setdefault(int(record["owner_id"]), []).append((line, record))

    return by_seller, invalid_ids, reasons


class CheckoutService:
    """
    Cart -> orders, one order per seller.

    1. serialize checkouts of one buyer (Redis lock)
    2. validate input and the cart, abort on self-purchase
    3. prune stale lines and persist the pruned cart whatever happens next
    4. create one order per seller from price snapshots
    5. clear the cart in the same transaction, gated on the cart version
    6. notify sellers after commit (fire-and-forget)
    """

    def __init__(
        self,
        db: Session,
        item_client: ItemClient,
        lock_service: LockService,
        notifier: NotificationService,
    ):
        self.cart_repo = CartRepo(db)
        self.order_repo = OrderRepo(db)
        self.item_client = item_client
        self.lock_service = lock_service
        self.notifier = notifier

    def checkout(
        self,
        buyer_id: int,
        delivery_method: str,
        payment_method: str,
        buyer_contact,
        shipping_address=None,
        pickup_details=None,
    ) -> Dict[str, Any]:
        token = self.lock_service.acquire_checkout_lock(buyer_id)
        if token is None:
            raise CheckoutInProgress(buyer_id)

        try:
            return self._checkout(
                buyer_id,
                _enum_value(DeliveryMethod, delivery_method),
                _enum_value(PaymentMethod, payment_method),
                buyer_contact,
                shipping_address,
                pickup_details,
            )
        finally:
            try:
                self.lock_service.release_checkout_lock(buyer_id, token)
            except RedisError as e:
                # the lock expires on its own
                logger.warning(f"Failed to release checkout lock for buyer {buyer_id}: {e}")

    def _checkout(
        self,
        buyer_id: int,
        delivery_method: str,
        payment_method: str,
        buyer_contact,
        shipping_address,
        pickup_details,
    ) -> Dict[str, Any]:
        cart = self.cart_repo.get_by_buyer(buyer_id)
        lines = self.cart_repo.get_cart_items(cart.id) if cart else []
        if not lines:
            raise EmptyCart(buyer_id)

        # --- input validation, nothing written yet
        require_delivery_info(delivery_method, shipping_address, pickup_details)

        contact = _as_dict(buyer_contact) or {}
        full_name = str(contact.get("full_name") or "").strip()
        phone = str(contact.get("phone") or "").strip()
        if not full_name or not phone:
            raise MissingDeliveryInfo("Buyer contact name and phone are required")

        normalized_pickup = None
        if delivery_method == DeliveryMethod.PICKUP.value:
            normalized_pickup = normalize_pickup_details(pickup_details)
        shipping = _as_dict(shipping_address) if delivery_method == DeliveryMethod.DELIVERY.value else None

        read_version = cart.version

        # --- one consistent catalog read for every line
        records = self.item_client.lookup_many(line.item_id for line in lines)

        for line in lines:
            record = records.get(line.item_id)
            if record and _same_user(record.get("owner_id"), buyer_id):
                logger.info(f"Buyer {buyer_id} tried to buy own item {line.item_id}")
                raise SelfPurchase(buyer_id, line.item_id)

        by_seller, invalid_ids, reasons = classify_lines(lines, records)

        if invalid_ids:
            read_version = self._prune(cart, read_version, invalid_ids, reasons)

        if not by_seller:
            raise NoValidItems(reasons)

        orders = []
        for seller_id, seller_lines in by_seller.items():
            order = self._build_order(
                buyer_id,
                seller_id,
                seller_lines,
                delivery_method=delivery_method,
                payment_method=payment_method,
                full_name=full_name,
                phone=phone,
                shipping=shipping,
                pickup=normalized_pickup,
            )
            self.order_repo.add_order(order)
            orders.append(order)

        # --- clear the cart, gated on the version we priced against
        self.cart_repo.delete_cart_items(cart.id)
        rowcount = self.cart_repo.update_cart_version(cart_id=cart.id, old_version=read_version)
        if rowcount == 0:
            self.cart_repo.rollback()
            raise ConcurrentModification(
                "Cart was modified during checkout, please review it and try again",
                details={"cart_id": cart.id, "version": read_version},
            )

        self.cart_repo.commit()

        for order in orders:
            logger.info(
                f"Order {order.id} created for buyer {buyer_id} and seller {order.seller_id}: "
                f"{len(order.items)} item(s), total {order.total_price} {CURRENCY}, "
                f"{payment_method}/{delivery_method}"
            )
            self.notifier.send(
                order.seller_id,
                "order",
                "New Order Received",
                f"You have a new order for {len(order.items)} item(s). Total: {order.total_price} {CURRENCY}",
                f"/seller/orders/{order.id}",
            )

        return {
            "orders": [OrderOut.model_validate(o) for o in orders],
            "removed": reasons,
        }

    def _prune(self, cart: CartModel, read_version: int, invalid_ids: List[int], reasons: List[str]) -> int:
        """Drop invalid lines and commit right away so a failed checkout still cleans the cart."""
        self.cart_repo.delete_cart_items(cart.id, invalid_ids)
        rowcount = self.cart_repo.update_cart_version(cart_id=cart.id, old_version=read_version)
        if rowcount == 0:
            self.cart_repo.rollback()
            raise ConcurrentModification(
                "Cart was modified during checkout, please review it and try again",
                details={"cart_id": cart.id, "version": read_version},
            )

        self.cart_repo.commit()
        logger.info(f"Pruned {len(invalid_ids)} line(s) from cart {cart.id}: {reasons}")
        return read_version + 1

    @staticmethod
    def _build_order(
        buyer_id: int,
        seller_id: int,
        seller_lines: List[Tuple[CartItemModel, dict]],
        *,
        delivery_method: str,
        payment_method: str,
        full_name: str,
        phone: str,
        shipping: Dict[str, Any] | None,
        pickup: Dict[str, Any] | None,
    ) -> OrderModel:
        items = [
            OrderLineItemModel(
                item_id=line.item_id,
                title=record["title"],
                unit_price=Decimal(str(record["price"])),
                quantity=line.quantity,
                image=record.get("image"),
            )
            for line, record in seller_lines
        ]
        total = sum((i.unit_price * i.quantity for i in items), Decimal("0.00"))

        return OrderModel(
            buyer_id=buyer_id,
            seller_id=seller_id,
            items=items,
            total_price=total,
            status=OrderStatus.PENDING_SELLER_CONFIRMATION.value,
            payment_status=initial_payment_status(payment_method).value,
            delivery_method=delivery_method,
            payment_method=payment_method,
            shipping_address=shipping,
            pickup_details=pickup,
            buyer_name=full_name,
            buyer_phone=phone,
            buyer_received=False,
            seller_delivered=False,
        )
