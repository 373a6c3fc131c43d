import pytest
from fastapi.testclient import TestClient

import main
from cart import CartService
from catalog import CatalogService
from errors import StoreUnavailable
from orders import OrderService
from schemas import ContactInfo, Product, ShippingAddress


class InMemoryStore:
    """Record store kept in dicts, with switches to simulate an outage."""

    def __init__(self, products=()):
        self.products = {p.id: p for p in products}
        self.cart_items = {}
        self.orders = {}
        self.reads_fail = False
        self.writes_fail = False
        self.orders_fail = False
        self.clear_fails = False
        self.quarantined_order_ids = set()
        self.create_order_calls = 0

    def _read(self):
        if self.reads_fail:
            raise StoreUnavailable("reads down")

    def _write(self):
        if self.writes_fail:
            raise StoreUnavailable("writes down")

    def fetch_products(self):
        self._read()
        return sorted(self.products.values(), key=lambda p: p.id)

    def fetch_product_by_id(self, product_id):
        self._read()
        return self.products.get(product_id)

    def count_products(self):
        self._read()
        return len(self.products)

    def insert_products(self, products):
        self._write()
        for p in products:
            self.products[p.id] = p
        return len(products)

    def fetch_cart_items(self):
        self._read()
        return [item.model_copy() for item in sorted(self.cart_items.values(), key=lambda i: i.id)]

    def create_cart_item(self, item):
        self._write()
        self.cart_items[item.id] = item
        return item

    def update_cart_item(self, item_id, fields):
        self._write()
        self.cart_items[item_id] = self.cart_items[item_id].model_copy(update=fields)

    def delete_cart_item(self, item_id):
        self._write()
        self.cart_items.pop(item_id, None)

    def clear_cart_items(self):
        self._write()
        if self.clear_fails:
            raise StoreUnavailable("cart clear failed")
        self.cart_items.clear()

    def fetch_orders(self):
        self._read()
        return sorted(self.orders.values(), key=lambda o: o.id)

    def fetch_order_by_id(self, order_id):
        self._read()
        return self.orders.get(order_id)

    def max_order_id(self):
        self._read()
        return max([*self.orders, *self.quarantined_order_ids], default=0)

    def create_order(self, order):
        self.create_order_calls += 1
        self._write()
        if self.orders_fail:
            raise StoreUnavailable("order insert failed")
        self.orders[order.id] = order
        return order

    def collection_names(self):
        self._read()
        return ["product", "cartitem", "order"]


def build_product(**overrides):
    data = {
        "id": 1,
        "brand": "Ray-Ban",
        "model": "Wayfarer",
        "description": "Classic acetate frame",
        "category": "sunglasses",
        "gender": "unisex",
        "price": 100.0,
        "discount_price": None,
        "frame_shape": "square",
        "frame_color": "black",
        "frame_material": "acetate",
        "images": ["https://example.com/1.jpg"],
        "rating": 4.0,
        "review_count": 10,
        "in_stock": True,
        "features": [],
        "size": {"lens_width": 50, "bridge_width": 20},
    }
    data.update(overrides)
    return Product.model_validate(data)


@pytest.fixture
def make_product():
    return build_product


@pytest.fixture
def products():
    return [
        build_product(id=1, brand="Ray-Ban", model="Wayfarer", category="sunglasses", gender="unisex",
                      price=154, discount_price=129, frame_shape="square", frame_color="black", rating=4.8),
        build_product(id=2, brand="Oakley", model="Holbrook", description="Sport frame", category="sunglasses",
                      gender="men", price=163, frame_shape="rectangle", frame_color="matte black", rating=4.6),
        build_product(id=3, brand="Warby Parker", model="Durand", description="Round eyeglasses with keyhole bridge",
                      category="eyeglasses", gender="unisex", price=95, frame_shape="round",
                      frame_color="tortoise", rating=4.5),
        build_product(id=4, brand="Persol", model="PO3019S", description="Italian cat eye", category="sunglasses",
                      gender="women", price=240, discount_price=199, frame_shape="cat-eye",
                      frame_color="havana", rating=4.7),
        build_product(id=5, brand="Warby Parker", model="Haskell", description="Titanium rectangle",
                      category="eyeglasses", gender="men", price=145, frame_shape="rectangle",
                      frame_color="silver", frame_material="titanium", rating=4.5),
    ]


@pytest.fixture
def store(products):
    return InMemoryStore(products)


@pytest.fixture
def catalog(store):
    return CatalogService(store)


@pytest.fixture
def cart(store, catalog):
    return CartService(store, catalog)


@pytest.fixture
def orders(store, cart):
    return OrderService(store, cart)


@pytest.fixture
def address():
    return ShippingAddress(first_name="Ada", last_name="Lovelace", address="12 Analytical Way",
                           city="London", state="LDN", zip_code="10001")


@pytest.fixture
def contact():
    return ContactInfo(email="ada@example.com", phone="555-0100")


@pytest.fixture
def client(store):
    main.configure(store)
    return TestClient(main.app)
