"""
Pytest fixtures: in-memory database, fake collaborators and order factories.
"""
import os
from decimal import Decimal

# settings are read at import time, so the environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campus_market.data.database import Base
from campus_market.data import models  # noqa: F401
from campus_market.data.models.cart import CartModel
from campus_market.data.models.cart_item import CartItemModel
from campus_market.data.models.order import OrderModel
from campus_market.data.models.order_line_item import OrderLineItemModel

from tests.fakes import FakeGateway, FakeItemClient, FakeLockService, RecordingNotifier

BUYER_ID = 1
SELLER_A = 101
SELLER_B = 102


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed database, each with its own connection."""
    engine = create_engine(f"sqlite:///{tmp_path / 'market.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def item_client():
    return FakeItemClient()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def put_in_cart(db):
    """put_in_cart(buyer_id, item_id, quantity=1) -> CartModel"""

    def _put(buyer_id: int, item_id: int, quantity: int = 1) -> CartModel:
        cart = db.query(CartModel).filter(CartModel.buyer_id == buyer_id).one_or_none()
        if cart is None:
            cart = CartModel(buyer_id=buyer_id, version=1)
            db.add(cart)
            db.flush()
        db.add(CartItemModel(cart_id=cart.id, item_id=item_id, quantity=quantity))
        db.commit()
        return cart

    return _put


@pytest.fixture
def cart_lines(db):
    """cart_lines(buyer_id) -> {item_id: quantity}"""

    def _lines(buyer_id: int) -> dict:
        db.expire_all()
        cart = db.query(CartModel).filter(CartModel.buyer_id == buyer_id).one_or_none()
        if cart is None:
            return {}
        return {i.item_id: i.quantity for i in cart.items}

    return _lines


@pytest.fixture
def make_order(db):
    """Insert an order directly in any state; returns its id."""

    def _make(**overrides) -> int:
        values = dict(
            buyer_id=BUYER_ID,
            seller_id=SELLER_A,
            total_price=Decimal("200.00"),
            status="pending_seller_confirmation",
            payment_status="not_required",
            delivery_method="pickup",
            pickup_details={"location_name": "Library entrance"},
            payment_method="cash",
            buyer_name="Somchai Buyer",
            buyer_phone="0812345678",
            buyer_received=False,
            seller_delivered=False,
        )
        values.update(overrides)

        order = OrderModel(**values)
        order.items = [
            OrderLineItemModel(item_id=10, title="Calculus textbook", unit_price=Decimal("100.00"), quantity=2)
        ]
        db.add(order)
        db.commit()
        return order.id

    return _make
