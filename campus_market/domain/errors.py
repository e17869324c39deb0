"""
Domain exceptions for the checkout and order lifecycle.

Hierarchy:
    MarketplaceError
    ├── ValidationFailed (ValueError)     - bad input, safe to retry once fixed
    │   ├── EmptyCart
    │   ├── MissingDeliveryInfo
    │   ├── InvalidPickupDetails
    │   ├── SelfPurchase
    │   ├── NoValidItems
    │   ├── MissingReason
    │   └── InvalidQuantity
    ├── NotFound (LookupError)
    │   ├── OrderNotFound
    │   └── ItemNotFound
    ├── AccessDenied (PermissionError)    - never retryable
    ├── StateConflict                     - refresh the order before retrying
    │   ├── InvalidState
    │   ├── InvalidPaymentState
    │   ├── NotConfirmed
    │   ├── AlreadyConfirmed
    │   ├── NotPickup
    │   ├── ConcurrentModification
    │   └── CheckoutInProgress
    └── PaymentFailed
        ├── ReferenceMismatch
        └── NotSucceeded

Services raise these; routers translate them to HTTP responses.
"""


class MarketplaceError(Exception):
    """
    Base exception for all marketplace errors.

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context (entity IDs, states, etc.)
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


# --- validation -------------------------------------------------------------

class ValidationFailed(MarketplaceError, ValueError):
    """Missing or malformed input, rejected before any mutation."""


class EmptyCart(ValidationFailed):
    def __init__(self, buyer_id: int):
        super().__init__("Cart is empty", details={"buyer_id": buyer_id})


class MissingDeliveryInfo(ValidationFailed):
    pass


class InvalidPickupDetails(ValidationFailed):
    pass


class SelfPurchase(ValidationFailed):
    def __init__(self, buyer_id: int, item_id: int):
        super().__init__(
            "You cannot purchase your own item",
            details={"buyer_id": buyer_id, "item_id": item_id},
        )
        self.item_id = item_id


class NoValidItems(ValidationFailed):
    """Every cart line was pruned; the cart has already been cleaned up."""

    def __init__(self, reasons: list[str]):
        super().__init__(
            "Some items are invalid or no longer available. The cart has been updated.",
            details={"removed": reasons},
        )
        self.reasons = reasons


class MissingReason(ValidationFailed):
    def __init__(self, order_id: int):
        super().__init__("A rejection reason is required", details={"order_id": order_id})


class InvalidQuantity(ValidationFailed):
    def __init__(self, quantity):
        super().__init__(f"Invalid quantity: {quantity}", details={"quantity": quantity})


# --- lookup -----------------------------------------------------------------

class NotFound(MarketplaceError, LookupError):
    pass


class OrderNotFound(NotFound):
    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found", details={"order_id": order_id})
        self.order_id = order_id


class ItemNotFound(NotFound):
    def __init__(self, item_id: int):
        super().__init__(f"Item {item_id} not found", details={"item_id": item_id})
        self.item_id = item_id


# --- authorization ----------------------------------------------------------

class AccessDenied(MarketplaceError, PermissionError):
    def __init__(self, order_id: int, user_id: int):
        super().__init__(
            f"User {user_id} does not have access to order {order_id}",
            details={"order_id": order_id, "user_id": user_id},
        )


# --- state conflicts --------------------------------------------------------

class StateConflict(MarketplaceError):
    pass


class InvalidState(StateConflict):
    def __init__(self, order_id: int, current_state: str, required_state: str):
        super().__init__(
            f"Order {order_id} is in state '{current_state}', required '{required_state}'",
            details={
                "order_id": order_id,
                "current_state": current_state,
                "required_state": required_state,
            },
        )
        self.current_state = current_state


class InvalidPaymentState(StateConflict):
    def __init__(self, order_id: int, payment_status: str, message: str | None = None):
        super().__init__(
            message or f"Order {order_id} payment is '{payment_status}'",
            details={"order_id": order_id, "payment_status": payment_status},
        )
        self.payment_status = payment_status


class NotConfirmed(StateConflict):
    def __init__(self, order_id: int, current_state: str):
        super().__init__(
            f"Order {order_id} must be confirmed by the seller first (status: {current_state})",
            details={"order_id": order_id, "current_state": current_state},
        )


class AlreadyConfirmed(StateConflict):
    def __init__(self, order_id: int, party: str):
        super().__init__(
            f"The {party} has already confirmed order {order_id}",
            details={"order_id": order_id, "party": party},
        )


class NotPickup(StateConflict):
    def __init__(self, order_id: int):
        super().__init__(
            f"Order {order_id} is not a pickup order",
            details={"order_id": order_id},
        )


class ConcurrentModification(StateConflict):
    pass


class CheckoutInProgress(StateConflict):
    def __init__(self, buyer_id: int):
        super().__init__(
            "Another checkout for this buyer is in progress",
            details={"buyer_id": buyer_id},
        )


# --- payment ----------------------------------------------------------------

class PaymentFailed(MarketplaceError):
    pass


class ReferenceMismatch(PaymentFailed):
    def __init__(self, order_id: int, reference: str):
        super().__init__(
            f"Payment reference does not match the intent recorded on order {order_id}",
            details={"order_id": order_id, "reference": reference},
        )


class NotSucceeded(PaymentFailed):
    def __init__(self, order_id: int, gateway_status: str):
        super().__init__(
            f"Payment for order {order_id} has not succeeded ({gateway_status})",
            details={"order_id": order_id, "gateway_status": gateway_status},
        )
