# campus_market/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional
from decimal import Decimal
from datetime import datetime

from campus_market.domain.order_state import (
    DeliveryMethod,
    PaymentMethod,
    OrderStatus,
    PaymentStatus,
)


# --- cart -------------------------------------------------------------------

class CartItemIn(BaseModel):
    """Adding an item to the cart."""

    item_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class QuantityIn(BaseModel):
    """Setting a line quantity; 0 removes the line."""

    quantity: int = Field(..., ge=0)


class CartSyncIn(BaseModel):
    """Replacing the whole cart with the client's copy."""

    items: List[CartItemIn]


class CartLineOut(BaseModel):
    item_id: int
    quantity: int
    added_at: datetime
    title: Optional[str] = None
    price: Optional[Decimal] = None
    image: Optional[str] = None
    seller_id: Optional[int] = None


class CartOut(BaseModel):
    cart_id: int
    buyer_id: int
    version: int
    items: List[CartLineOut]
    total_items: int
    total_price: Decimal
    updated_at: datetime | None = None


# --- checkout ---------------------------------------------------------------

class BuyerContact(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=50)


class ShippingAddress(BaseModel):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)


class PickupDetailsIn(BaseModel):
    """Raw pickup details; the checkout service trims and parses them."""

    location_name: Optional[str] = None
    address: Optional[str] = None
    note: Optional[str] = None
    coordinates: Optional[Dict[str, Any]] = None
    preferred_time: Optional[Any] = None


class CheckoutIn(BaseModel):
    delivery_method: DeliveryMethod
    payment_method: PaymentMethod
    buyer_contact: BuyerContact
    shipping_address: Optional[ShippingAddress] = None
    pickup_details: Optional[PickupDetailsIn] = None


# --- orders -----------------------------------------------------------------

class OrderLineItemOut(BaseModel):
    item_id: int
    title: str
    unit_price: Decimal
    quantity: int
    image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    buyer_id: int
    seller_id: int
    items: List[OrderLineItemOut]
    total_price: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    delivery_method: DeliveryMethod
    payment_method: PaymentMethod
    shipping_address: Optional[Dict[str, Any]] = None
    pickup_details: Optional[Dict[str, Any]] = None
    buyer_name: str
    buyer_phone: str
    payment_intent_ref: Optional[str] = None
    buyer_received: bool
    seller_delivered: bool
    rejection_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    payment_submitted_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    buyer_received_at: Optional[datetime] = None
    seller_delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CheckoutOut(BaseModel):
    orders: List[OrderOut]
    removed: List[str] = []


class RejectIn(BaseModel):
    reason: str = ""


class PaymentConfirmIn(BaseModel):
    reference: str = Field(..., min_length=1)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrderListOut(BaseModel):
    orders: List[OrderOut]
    pagination: Pagination
    status_counts: Dict[str, int]


class SellerStatsOut(BaseModel):
    total_orders: int
    pending_orders: int
    total_revenue: Decimal
