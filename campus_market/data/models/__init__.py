# all models imported here so SQLAlchemy registers them in Base.metadata

from campus_market.data.models.cart import CartModel
from campus_market.data.models.cart_item import CartItemModel
from campus_market.data.models.order import OrderModel
from campus_market.data.models.order_line_item import OrderLineItemModel

__all__ = ["CartModel", "CartItemModel", "OrderModel", "OrderLineItemModel"]
