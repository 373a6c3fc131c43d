"""
Pricing/Tax/Shipping

Everything that turns products and quantities into money lives here. Sums
are carried in Decimal at full precision and only rounded (half-up, to the
cent) when a PriceBreakdown is produced.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from schemas import PriceBreakdown, Product

CENT = Decimal("0.01")

FREE_SHIPPING_THRESHOLD = Decimal("100")
FLAT_SHIPPING = Decimal("9.99")
TAX_RATE = Decimal("0.08")

LENS_SURCHARGES = {
    "standard": Decimal("0"),
    "blue-light": Decimal("25"),
    "prescription": Decimal("50"),
}


def to_decimal(value) -> Decimal:
    # str() keeps 9.99 as 9.99 instead of its binary float expansion
    return Decimal(str(value))


def _round(value: Decimal) -> float:
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def effective_price(product: Product) -> Decimal:
    """Sale price when the product has a positive discount price, else list price."""
    if product.discount_price:
        return to_decimal(product.discount_price)
    return to_decimal(product.price)


def lens_surcharge(lens_type: Optional[str]) -> Decimal:
    return LENS_SURCHARGES.get(lens_type or "standard", Decimal("0"))


def unit_price(product: Product, lens_type: Optional[str] = "standard") -> Decimal:
    return effective_price(product) + lens_surcharge(lens_type)


def calc_subtotal(lines: Iterable[Tuple[Product, int, Optional[str]]]) -> Decimal:
    return sum(
        (unit_price(product, lens_type) * quantity for product, quantity, lens_type in lines),
        Decimal("0"),
    )


def calc_shipping(subtotal: Decimal) -> Decimal:
    # Free only strictly above the threshold; exactly 100.00 still pays
    if subtotal > FREE_SHIPPING_THRESHOLD:
        return Decimal("0")
    return FLAT_SHIPPING


def calc_tax(subtotal: Decimal) -> Decimal:
    # Goods only, shipping is not taxed
    return subtotal * TAX_RATE


def price_lines(lines: Iterable[Tuple[Product, int, Optional[str]]]) -> PriceBreakdown:
    """Price (product, quantity, lens type) triples into a rounded breakdown."""
    subtotal = calc_subtotal(lines)
    shipping = calc_shipping(subtotal)
    tax = calc_tax(subtotal)
    total = subtotal + shipping + tax
    return PriceBreakdown(
        subtotal=_round(subtotal),
        shipping=_round(shipping),
        tax=_round(tax),
        total=_round(total),
    )


def price_cart(cart_lines) -> PriceBreakdown:
    """Price resolved cart lines (anything with .product, .quantity, .selected_lens_type)."""
    return price_lines((line.product, line.quantity, line.selected_lens_type) for line in cart_lines)
