# campus_market/api/routers/orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from campus_market.api.deps import (
    get_checkout_service,
    get_completion_service,
    get_order_service,
    get_payment_service,
)
from campus_market.api.errors import to_http
from campus_market.domain.errors import MarketplaceError
from campus_market.domain.schemas import CheckoutIn, CheckoutOut, OrderListOut, OrderOut
from campus_market.services.checkout_service import CheckoutService
from campus_market.services.completion_service import CompletionService
from campus_market.services.order_service import OrderService
from campus_market.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/checkout", response_model=CheckoutOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    user_id: int = Query(...),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Turns the buyer's cart into one order per seller.
    Stale lines are pruned and reported in ``removed``.
    """
    try:
        return svc.checkout(
            buyer_id=user_id,
            delivery_method=payload.delivery_method,
            payment_method=payload.payment_method,
            buyer_contact=payload.buyer_contact,
            shipping_address=payload.shipping_address,
            pickup_details=payload.pickup_details,
        )
    except MarketplaceError as e:
        raise to_http(e)


@router.get("", response_model=OrderListOut)
def list_orders(
    user_id: int = Query(...),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_buyer_orders(user_id, status=status, page=page, limit=limit)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.get_order(order_id, user_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/{order_id}/payment-notice", response_model=OrderOut)
def submit_payment_notice(
    order_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.submit_payment_notice(order_id, user_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/{order_id}/payment-intent", response_model=OrderOut)
def create_payment_intent(
    order_id: int,
    user_id: int = Query(...),
    svc: PaymentService = Depends(get_payment_service),
):
    try:
        return svc.create_payment_intent(order_id, user_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/{order_id}/received", response_model=OrderOut)
def mark_received(
    order_id: int,
    user_id: int = Query(...),
    svc: CompletionService = Depends(get_completion_service),
):
    try:
        return svc.mark_received(order_id, user_id)
    except MarketplaceError as e:
        raise to_http(e)
