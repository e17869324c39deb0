# campus_market/api/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from campus_market.data.database import get_db
from campus_market.services.cart_service import CartService
from campus_market.services.checkout_service import CheckoutService
from campus_market.services.completion_service import CompletionService
from campus_market.services.item_client import ItemClient
from campus_market.services.lock_service import LockService
from campus_market.services.notification_service import NotificationService
from campus_market.services.order_service import OrderService
from campus_market.services.payment_gateway import PaymentGatewayClient
from campus_market.services.payment_service import PaymentService


def get_item_client() -> ItemClient:
    return ItemClient()


def get_lock_service() -> LockService:
    return LockService()


def get_notifier() -> NotificationService:
    return NotificationService()


def get_payment_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient()


def get_cart_service(
    db: Session = Depends(get_db),
    item_client: ItemClient = Depends(get_item_client),
) -> CartService:
    return CartService(db=db, item_client=item_client)


def get_checkout_service(
    db: Session = Depends(get_db),
    item_client: ItemClient = Depends(get_item_client),
    lock_service: LockService = Depends(get_lock_service),
    notifier: NotificationService = Depends(get_notifier),
) -> CheckoutService:
    return CheckoutService(
        db=db,
        item_client=item_client,
        lock_service=lock_service,
        notifier=notifier,
    )


def get_order_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
) -> OrderService:
    return OrderService(db, notifier)


def get_completion_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
) -> CompletionService:
    return CompletionService(db, notifier)


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notifier),
) -> PaymentService:
    return PaymentService(db, gateway, notifier)
