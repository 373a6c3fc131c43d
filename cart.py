"""
Cart aggregate.

One line per product: adding a product already in the cart bumps its
quantity and keeps the lens type chosen first. Lines reference products by
id only and are resolved against the catalog on every read; lines whose
product is gone are dropped from the view, not deleted.
"""

from typing import List

import structlog

from catalog import CatalogService
from errors import ProductNotFound, StoreUnavailable, ValidationError
from pricing import LENS_SURCHARGES, price_cart
from schemas import CartItem, CartLine, PriceBreakdown

logger = structlog.get_logger(__name__)


class CartService:
    def __init__(self, store, catalog: CatalogService):
        self.store = store
        self.catalog = catalog

    def _find_line(self, items: List[CartItem], product_id: int):
        return next((item for item in items if item.product_id == product_id), None)

    def _next_id(self, items: List[CartItem]) -> int:
        return max((item.id for item in items), default=0) + 1

    def _items(self) -> List[CartItem]:
        try:
            return self.store.fetch_cart_items()
        except StoreUnavailable as e:
            logger.warning("cart_unavailable", error=str(e))
            return []

    def resolve(self, items: List[CartItem]) -> List[CartLine]:
        lines = []
        for item in items:
            product = self.catalog.find(item.product_id)
            if product is None:
                logger.warning("cart_line_stale", item_id=item.id, product_id=item.product_id)
                continue
            lines.append(CartLine(**item.model_dump(), product=product))
        return lines

    def lines(self) -> List[CartLine]:
        """Resolved lines, letting StoreUnavailable through. Used by checkout."""
        return self.resolve(self.store.fetch_cart_items())

    # Reads

    def get_all(self) -> List[CartLine]:
        return self.resolve(self._items())

    def get_item_count(self) -> int:
        return sum(item.quantity for item in self._items())

    def get_total(self) -> PriceBreakdown:
        return price_cart(self.get_all())

    # Writes

    def add_item(self, product_id: int, quantity: int = 1, lens_type: str = "standard") -> List[CartLine]:
        if not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")
        if lens_type not in LENS_SURCHARGES:
            raise ValidationError(f"Unknown lens type {lens_type!r}")
        if self.store.fetch_product_by_id(product_id) is None:
            raise ProductNotFound(product_id)

        items = self.store.fetch_cart_items()
        existing = self._find_line(items, product_id)
        if existing is not None:
            self.store.update_cart_item(existing.id, {"quantity": existing.quantity + quantity})
        else:
            self.store.create_cart_item(CartItem(
                id=self._next_id(items),
                product_id=product_id,
                quantity=quantity,
                selected_lens_type=lens_type,
            ))
        return self.get_all()

    def update_quantity(self, product_id: int, quantity: int) -> List[CartLine]:
        if quantity <= 0:
            return self.remove_item(product_id)
        existing = self._find_line(self.store.fetch_cart_items(), product_id)
        if existing is not None:
            self.store.update_cart_item(existing.id, {"quantity": quantity})
        return self.get_all()

    def remove_item(self, product_id: int) -> List[CartLine]:
        existing = self._find_line(self.store.fetch_cart_items(), product_id)
        if existing is not None:
            self.store.delete_cart_item(existing.id)
        return self.get_all()

    def clear(self) -> List[CartLine]:
        self.store.clear_cart_items()
        return []
