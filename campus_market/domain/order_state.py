# campus_market/domain/order_state.py
from enum import Enum


class DeliveryMethod(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class PaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    PROMPTPAY = "promptpay"


class OrderStatus(str, Enum):
    PENDING_SELLER_CONFIRMATION = "pending_seller_confirmation"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PAYMENT_SUBMITTED = "payment_submitted"
    PAID = "paid"


TERMINAL_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.REJECTED, OrderStatus.CANCELLED}
)

# payment states from which the buyer may still notify or the gateway may still settle
OPEN_PAYMENT_STATUSES = (PaymentStatus.PENDING.value, PaymentStatus.AWAITING_PAYMENT.value)
SETTLEABLE_PAYMENT_STATUSES = OPEN_PAYMENT_STATUSES + (PaymentStatus.PAYMENT_SUBMITTED.value,)


def requires_payment(payment_method: str) -> bool:
    return payment_method in (PaymentMethod.TRANSFER.value, PaymentMethod.PROMPTPAY.value)


def initial_payment_status(payment_method: str) -> PaymentStatus:
    if requires_payment(payment_method):
        return PaymentStatus.PENDING
    return PaymentStatus.NOT_REQUIRED


def payment_settled_enough_for_handover(payment_method: str, payment_status: str) -> bool:
    """Seller may hand over once a non-cash buyer has at least submitted payment."""
    if not requires_payment(payment_method):
        return True
    return payment_status in (PaymentStatus.PAYMENT_SUBMITTED.value, PaymentStatus.PAID.value)


def is_fulfilled(buyer_received: bool, seller_delivered: bool) -> bool:
    """Both parties attested fulfilment; the only condition for completion."""
    return bool(buyer_received) and bool(seller_delivered)
