"""
Order builder.

An order is a frozen copy of the priced cart: products and effective prices
are snapshotted so later catalog changes never rewrite history. The cart is
cleared only after the order store confirms the write.
"""

from datetime import datetime, timezone
from typing import List

import structlog

from cart import CartService
from errors import EmptyCartError, OrderNotFound, StoreUnavailable
from pricing import effective_price, lens_surcharge, price_cart
from schemas import ContactInfo, Order, OrderLine, ShippingAddress

logger = structlog.get_logger(__name__)


class OrderService:
    def __init__(self, store, cart: CartService):
        self.store = store
        self.cart = cart

    def _next_id(self) -> int:
        # Counts quarantined records too, so their ids are never reused
        return self.store.max_order_id() + 1

    def create(self, shipping_address: ShippingAddress, contact_info: ContactInfo) -> Order:
        lines = self.cart.lines()
        if not lines:
            raise EmptyCartError()

        breakdown = price_cart(lines)
        items = [
            OrderLine(
                product_id=line.product_id,
                product=line.product.model_copy(deep=True),
                quantity=line.quantity,
                price=float(effective_price(line.product)),
                selected_lens_type=line.selected_lens_type,
                lens_surcharge=float(lens_surcharge(line.selected_lens_type)),
            )
            for line in lines
        ]
        order = Order(
            id=self._next_id(),
            items=items,
            subtotal=breakdown.subtotal,
            shipping=breakdown.shipping,
            tax=breakdown.tax,
            total=breakdown.total,
            shipping_address=shipping_address,
            contact_info=contact_info,
            status="Processing",
            created_at=datetime.now(timezone.utc),
        )

        # Raises on failure, leaving the cart untouched
        saved = self.store.create_order(order)
        logger.info("order_created", order_id=saved.id, lines=len(saved.items), total=saved.total)
        try:
            self.cart.clear()
        except StoreUnavailable as e:
            # Order is stored; a failed clear does not fail the checkout
            logger.error("cart_clear_failed", order_id=saved.id, error=str(e))
        return saved

    def get(self, order_id: int) -> Order:
        try:
            order = self.store.fetch_order_by_id(order_id)
        except StoreUnavailable as e:
            logger.warning("order_store_unavailable", order_id=order_id, error=str(e))
            order = None
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def list(self) -> List[Order]:
        try:
            return self.store.fetch_orders()
        except StoreUnavailable as e:
            logger.warning("order_store_unavailable", error=str(e))
            return []
