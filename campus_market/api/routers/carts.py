# campus_market/api/routers/carts.py
from fastapi import APIRouter, Depends, Query

from campus_market.api.deps import get_cart_service
from campus_market.api.errors import to_http
from campus_market.domain.errors import MarketplaceError
from campus_market.domain.schemas import CartItemIn, CartOut, CartSyncIn, QuantityIn
from campus_market.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartOut)
def get_cart(
    user_id: int = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.get_cart(user_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    user_id: int = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.add_item(user_id, payload.item_id, payload.quantity)
    except MarketplaceError as e:
        raise to_http(e)


@router.put("/items/{item_id}", response_model=CartOut)
def update_quantity(
    item_id: int,
    payload: QuantityIn,
    user_id: int = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.update_quantity(user_id, item_id, payload.quantity)
    except MarketplaceError as e:
        raise to_http(e)


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: int,
    user_id: int = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.remove_item(user_id, item_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.delete("", response_model=CartOut)
def clear_cart(
    user_id: int = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.clear_cart(user_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/sync", response_model=CartOut)
def sync_cart(
    payload: CartSyncIn,
    user_id: int = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.sync_cart(user_id, [i.model_dump() for i in payload.items])
    except MarketplaceError as e:
        raise to_http(e)
