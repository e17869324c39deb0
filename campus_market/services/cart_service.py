from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from requests import RequestException

from campus_market.data.models.cart import CartModel
from campus_market.data.models.cart_item import CartItemModel
from campus_market.domain.errors import ConcurrentModification, InvalidQuantity, ItemNotFound
from campus_market.repos.cart_repo import CartRepo
from campus_market.services.item_client import ItemClient
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Per-buyer cart, a simple CQRS split:
    commands (add, update, remove, clear, sync) change state and bump the version,
    query (get) only reads.

    Every command is gated on the version read at its start; a concurrent
    writer makes the conditional update touch zero rows and we roll back.
    """

    def __init__(self, db: Session, item_client: ItemClient):
        self.repo = CartRepo(db)
        self.item_client = item_client

    # query
    def get_or_create(self, buyer_id: int) -> CartModel:
        cart = self.repo.get_by_buyer(buyer_id)
        if cart:
            return cart

        try:
            cart = self.repo.create_cart(CartModel(buyer_id=buyer_id, version=1))
        except IntegrityError:
            # another request created the cart after our read
            self.repo.rollback()
            cart = self.repo.get_by_buyer(buyer_id)
            if cart is None:
                raise
            logger.info(f"Cart {cart.id} for buyer {buyer_id} was created concurrently, reusing it")
            return cart

        logger.info(f"Created cart {cart.id} for buyer {buyer_id}")
        return cart

    def get_cart(self, buyer_id: int) -> Dict[str, Any]:
        cart = self.get_or_create(buyer_id)
        items = self.repo.get_cart_items(cart.id)

        live = {}
        if items:
            try:
                live = self.item_client.lookup_many(i.item_id for i in items)
            except RequestException as e:
                # the cart is still readable without display data
                logger.warning(f"Catalog unavailable while reading cart {cart.id}: {e}")

        lines = []
        total = Decimal("0.00")
        for i in items:
            record = live.get(i.item_id)
            line = {
                "item_id": i.item_id,
                "quantity": i.quantity,
                "added_at": i.added_at,
            }
            if record:
                price = Decimal(str(record["price"]))
                line.update(
                    title=record["title"],
                    price=price,
                    image=record.get("image"),
                    seller_id=record.get("owner_id"),
                )
                total += price * i.quantity
            lines.append(line)

        return {
            "cart_id": cart.id,
            "buyer_id": cart.buyer_id,
            "version": cart.version,
            "items": lines,
            "total_items": sum(i.quantity for i in items),
            "total_price": total,
            "updated_at": cart.updated_at,
        }

    # commands
    def add_item(self, buyer_id: int, item_id: int, quantity: int = 1) -> Dict[str, Any]:
        if quantity is None or quantity < 1:
            raise InvalidQuantity(quantity)

        logger.info(f"Checking item {item_id} in the catalog")
        if self.item_client.lookup(item_id) is None:
            raise ItemNotFound(item_id)

        cart = self.get_or_create(buyer_id)
        existing = self.repo.get_cart_item(cart.id, item_id)

        if existing:
            logger.info(
                f"Item {item_id} already in cart {cart.id}, quantity "
                f"{existing.quantity} -> {existing.quantity + quantity}"
            )
            existing.quantity += quantity
            self.repo.add_cart_item(existing)
        else:
            logger.info(f"Adding item {item_id} to cart {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    item_id=item_id,
                    quantity=quantity,
                    added_at=datetime.now(timezone.utc),
                )
            )

        self._bump_version(cart)
        return self.get_cart(buyer_id)

    def update_quantity(self, buyer_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity is None or quantity < 0:
            raise InvalidQuantity(quantity)

        cart = self.get_or_create(buyer_id)

        if quantity == 0:
            logger.info(f"Quantity 0 for item {item_id}, removing it from cart {cart.id}")
            self.repo.delete_cart_item(cart.id, item_id)
        else:
            existing = self.repo.get_cart_item(cart.id, item_id)
            if existing is None:
                raise ItemNotFound(item_id)
            existing.quantity = quantity
            self.repo.add_cart_item(existing)

        self._bump_version(cart)
        return self.get_cart(buyer_id)

    def remove_item(self, buyer_id: int, item_id: int) -> Dict[str, Any]:
        cart = self.get_or_create(buyer_id)

        logger.info(f"Removing item {item_id} from cart {cart.id}")
        self.repo.delete_cart_item(cart.id, item_id)

        self._bump_version(cart)
        return self.get_cart(buyer_id)

    def clear_cart(self, buyer_id: int) -> Dict[str, Any]:
        cart = self.get_or_create(buyer_id)

        removed = self.repo.delete_cart_items(cart.id)
        logger.info(f"Cleared {removed} line(s) from cart {cart.id}")

        self._bump_version(cart)
        return self.get_cart(buyer_id)

    def sync_cart(self, buyer_id: int, items: List[Dict[str, int]]) -> Dict[str, Any]:
        """Replace every line with the client's copy; duplicate item ids are merged."""
        merged: Dict[int, int] = {}
        for entry in items:
            quantity = entry.get("quantity")
            if quantity is None or quantity < 1:
                raise InvalidQuantity(quantity)
            merged[entry["item_id"]] = merged.get(entry["item_id"], 0) + quantity

        cart = self.get_or_create(buyer_id)
        self.repo.delete_cart_items(cart.id)

        now = datetime.now(timezone.utc)
        for item_id, quantity in merged.items():
            self.repo.add_cart_item(
                CartItemModel(cart_id=cart.id, item_id=item_id, quantity=quantity, added_at=now)
            )

        logger.info(f"Synced cart {cart.id} with {len(merged)} line(s)")

        self._bump_version(cart)
        return self.get_cart(buyer_id)

    def _bump_version(self, cart: CartModel) -> None:
        rowcount = self.repo.update_cart_version(cart_id=cart.id, old_version=cart.version)

        # e.g. UPDATE carts SET version = 3 WHERE id = 1 AND version = 2
        if rowcount == 0:
            self.repo.rollback()
            raise ConcurrentModification(
                "Cart was modified by another operation",
                details={"cart_id": cart.id, "version": cart.version},
            )

        self.repo.commit()
        self.repo.refresh(cart)

        logger.info(f"Cart {cart.id} saved, new version: {cart.version}")
