# campus_market/api/routers/seller.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from campus_market.api.deps import get_completion_service, get_order_service
from campus_market.api.errors import to_http
from campus_market.domain.errors import MarketplaceError
from campus_market.domain.schemas import OrderListOut, OrderOut, RejectIn, SellerStatsOut
from campus_market.services.completion_service import CompletionService
from campus_market.services.order_service import OrderService

router = APIRouter(prefix="/seller", tags=["seller"])


@router.get("/stats", response_model=SellerStatsOut)
def seller_stats(
    user_id: int = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    return svc.seller_stats(user_id)


@router.get("/orders", response_model=OrderListOut)
def list_orders(
    user_id: int = Query(...),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_seller_orders(user_id, status=status, page=page, limit=limit)


@router.post("/orders/{order_id}/confirm", response_model=OrderOut)
def confirm_order(
    order_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.confirm_order(order_id, user_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/orders/{order_id}/reject", response_model=OrderOut)
def reject_order(
    order_id: int,
    payload: RejectIn,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.reject_order(order_id, user_id, payload.reason)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/orders/{order_id}/delivered", response_model=OrderOut)
def mark_delivered(
    order_id: int,
    user_id: int = Query(...),
    svc: CompletionService = Depends(get_completion_service),
):
    try:
        return svc.mark_delivered(order_id, user_id)
    except MarketplaceError as e:
        raise to_http(e)
