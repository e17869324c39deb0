# campus_market/repos/order_repo.py
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from campus_market.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        """Adds without committing; checkout commits all orders of a cart at once."""
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id, populate_existing=True)

    def update_where(self, order_id: int, conditions: List, values: Dict) -> int:
        """
        Atomic conditional update, e.g.
        UPDATE orders SET status='confirmed' WHERE id=:id AND status='pending_seller_confirmation'
        Returns the number of rows touched (0 or 1).
        """
        values = dict(values)
        values.setdefault("updated_at", datetime.now(timezone.utc))

        res = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def list_orders(
        self,
        *,
        buyer_id: int | None = None,
        seller_id: int | None = None,
        status: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[OrderModel], int]:
        conditions = []
        if buyer_id is not None:
            conditions.append(OrderModel.buyer_id == buyer_id)
        if seller_id is not None:
            conditions.append(OrderModel.seller_id == seller_id)
        if status is not None:
            conditions.append(OrderModel.status == status)

        total = self.db.execute(
            select(func.count(OrderModel.id)).where(*conditions)
        ).scalar_one()

        orders = self.db.execute(
            select(OrderModel)
            .where(*conditions)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()

        return list(orders), total

    def count_by_status(self, *, buyer_id: int | None = None, seller_id: int | None = None) -> Dict[str, int]:
        stmt = select(OrderModel.status, func.count(OrderModel.id)).group_by(OrderModel.status)
        if buyer_id is not None:
            stmt = stmt.where(OrderModel.buyer_id == buyer_id)
        if seller_id is not None:
            stmt = stmt.where(OrderModel.seller_id == seller_id)
        return {status: count for status, count in self.db.execute(stmt).all()}

    def revenue(self, seller_id: int, status: str):
        return self.db.execute(
            select(func.coalesce(func.sum(OrderModel.total_price), 0)).where(
                OrderModel.seller_id == seller_id,
                OrderModel.status == status,
            )
        ).scalar_one()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
