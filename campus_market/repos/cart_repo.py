# campus_market/repos/cart_repo.py
from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from campus_market.data.models.cart import CartModel
from campus_market.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_buyer(self, buyer_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.buyer_id == buyer_id)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def get_cart_items(self, cart_id: int) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.added_at, CartItemModel.id)
            ).scalars().all()
        )

    def get_cart_item(self, cart_id: int, item_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.item_id == item_id,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> None:
        self.db.add(item)
        self.db.flush()

    def delete_cart_item(self, cart_id: int, item_id: int) -> int:
        res = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.item_id == item_id,
            )
        )
        return res.rowcount

    def delete_cart_items(self, cart_id: int, item_ids: List[int] | None = None) -> int:
        """Removes the given lines, or every line when ``item_ids`` is None."""
        stmt = delete(CartItemModel).where(CartItemModel.cart_id == cart_id)
        if item_ids is not None:
            if not item_ids:
                return 0
            stmt = stmt.where(CartItemModel.item_id.in_(item_ids))
        return self.db.execute(stmt).rowcount

    def update_cart_version(self, cart_id: int, old_version: int, new_data: Dict | None = None) -> int:
        """
        Optimistic locking:
        UPDATE carts SET version = old + 1, ... WHERE id = :id AND version = :old
        Zero rows means someone else changed the cart since we read it.
        """
        values = {
            "version": old_version + 1,
            "updated_at": datetime.now(timezone.utc),
        }
        values.update(new_data or {})

        res = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def find_inactive_carts(self, cutoff: datetime) -> List[CartModel]:
        return list(
            self.db.execute(
                select(CartModel)
                .where(CartModel.updated_at < cutoff)
                .where(CartModel.items.any())
            ).scalars().all()
        )

    def refresh(self, cart: CartModel) -> CartModel:
        self.db.refresh(cart)
        return cart

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
