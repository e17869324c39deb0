from sqlalchemy import Column, Integer, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from campus_market.data.database import Base


class OrderLineItemModel(Base):
    """Snapshot of a catalog item taken when the order was placed.

    ``item_id`` is a plain weak reference; the catalog item may be edited or
    deleted later without touching the snapshot.
    """

    __tablename__ = "order_line_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, nullable=False)

    title = Column(String(255), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String(500), nullable=True)

    order = relationship("OrderModel", back_populates="items")
