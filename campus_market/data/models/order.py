from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, JSON, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from campus_market.data.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    buyer_id = Column(Integer, nullable=False, index=True)
    seller_id = Column(Integer, nullable=False, index=True)

    # computed once at checkout from the line snapshots, never from live prices
    total_price = Column(Numeric(12, 2), nullable=False)

    status = Column(String(40), nullable=False, default="pending_seller_confirmation", index=True)
    payment_status = Column(String(40), nullable=False, default="not_required")

    delivery_method = Column(String(20), nullable=False)
    shipping_address = Column(JSON, nullable=True)
    pickup_details = Column(JSON, nullable=True)

    payment_method = Column(String(20), nullable=False)
    payment_intent_ref = Column(String(120), nullable=True)

    buyer_name = Column(String(200), nullable=False)
    buyer_phone = Column(String(50), nullable=False)

    buyer_received = Column(Boolean, nullable=False, default=False)
    seller_delivered = Column(Boolean, nullable=False, default=False)

    rejection_reason = Column(Text, nullable=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    payment_submitted_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    buyer_received_at = Column(DateTime(timezone=True), nullable=True)
    seller_delivered_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "OrderLineItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
