"""
Catalog queries: filtering, sorting, lookups and the filter panel options.

filter_products and sort_products are pure and never raise; CatalogService
wires them to the record store.
"""

from typing import List, Optional

import structlog

from errors import ProductNotFound, StoreUnavailable
from pricing import effective_price, to_decimal
from schemas import FilterOptions, FilterSpec, PriceRange, Product

logger = structlog.get_logger(__name__)

SORT_KEYS = {
    "price-low": (effective_price, False),
    "price-high": (effective_price, True),
    "rating": (lambda p: p.rating, True),
    "newest": (lambda p: p.id, True),
}


def _selects(value: Optional[str]) -> bool:
    return bool(value) and value.lower() != "all"


def matches(product: Product, spec: FilterSpec) -> bool:
    if _selects(spec.category) and product.category.lower() != spec.category.lower():
        return False
    if _selects(spec.gender):
        gender = product.gender.lower()
        if gender != spec.gender.lower() and gender != "unisex":
            return False
    if spec.frame_shape and product.frame_shape not in spec.frame_shape:
        return False
    if spec.frame_color and product.frame_color not in spec.frame_color:
        return False
    if spec.brand and product.brand not in spec.brand:
        return False
    if spec.price_range is not None:
        price = effective_price(product)
        if not (to_decimal(spec.price_range.min) <= price <= to_decimal(spec.price_range.max)):
            return False
    if spec.search:
        needle = spec.search.lower()
        haystacks = (product.brand, product.model, product.description or "")
        if not any(needle in h.lower() for h in haystacks):
            return False
    return True


def filter_products(products: List[Product], spec: Optional[FilterSpec] = None) -> List[Product]:
    """Products satisfying every dimension of spec (any listed value within a dimension)."""
    if spec is None:
        return list(products)
    return [p for p in products if matches(p, spec)]


def sort_products(products: List[Product], sort_by: Optional[str] = None) -> List[Product]:
    """Stable sort by one of SORT_KEYS; an unknown or missing key keeps input order."""
    if sort_by not in SORT_KEYS:
        return list(products)
    key, reverse = SORT_KEYS[sort_by]
    # sorted() stays stable with reverse=True, so ties keep input order
    return sorted(products, key=key, reverse=reverse)


class CatalogService:
    def __init__(self, store):
        self.store = store

    def all(self) -> List[Product]:
        try:
            return self.store.fetch_products()
        except StoreUnavailable as e:
            logger.warning("catalog_unavailable", error=str(e))
            return []

    def query(self, spec: Optional[FilterSpec] = None) -> List[Product]:
        spec = spec or FilterSpec()
        return sort_products(filter_products(self.all(), spec), spec.sort_by)

    def find(self, product_id: int) -> Optional[Product]:
        """Product by id, or None when it does not resolve (missing or store down)."""
        try:
            return self.store.fetch_product_by_id(product_id)
        except StoreUnavailable as e:
            logger.warning("catalog_unavailable", product_id=product_id, error=str(e))
            return None

    def get(self, product_id: int) -> Product:
        product = self.find(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def related(self, product_id: int, limit: int = 4) -> List[Product]:
        products = self.all()
        product = next((p for p in products if p.id == product_id), None)
        if product is None:
            return []
        related = [
            p for p in products
            if p.id != product_id and (p.category == product.category or p.frame_shape == product.frame_shape)
        ]
        return related[:limit]

    def quick_search(self, text: str, limit: int = 8) -> List[Product]:
        """Header search box: brand, model, category or frame shape contains text."""
        needle = (text or "").lower()
        hits = [
            p for p in self.all()
            if any(needle in field.lower() for field in (p.brand, p.model, p.category, p.frame_shape))
        ]
        return hits[:limit]

    def filter_options(self) -> FilterOptions:
        products = self.all()
        prices = [float(effective_price(p)) for p in products]
        return FilterOptions(
            brands=sorted({p.brand for p in products}),
            frame_shapes=sorted({p.frame_shape for p in products}),
            frame_colors=sorted({p.frame_color for p in products}),
            materials=sorted({p.frame_material for p in products}),
            price_range=PriceRange(min=min(prices), max=max(prices)) if prices else None,
        )
