import logging
import os
from typing import List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import structlog

from cart import CartService
from catalog import CatalogService
from database import MongoStore, get_database
from errors import EmptyCartError, NotFound, ProductNotFound, StoreUnavailable, ValidationError
from orders import OrderService
from pricing import price_lines
from schemas import ContactInfo, FilterSpec, LensType, PriceRange, Product, ShippingAddress

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    ),
)
logger = structlog.get_logger(__name__)

app = FastAPI(title="Eyewear Shop API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Services


def configure(store) -> None:
    """Build the services once for the given record store and attach them to the app."""
    catalog = CatalogService(store)
    cart = CartService(store, catalog)
    app.state.store = store
    app.state.catalog = catalog
    app.state.cart = cart
    app.state.orders = OrderService(store, cart)


def catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog


def cart_service(request: Request) -> CartService:
    return request.app.state.cart


def order_service(request: Request) -> OrderService:
    return request.app.state.orders

# Errors


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
@app.exception_handler(EmptyCartError)
async def bad_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("store_unavailable", method=request.method, path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "Database not available"})

# Seed helpers (idempotent)


def _seed_payload() -> List[Product]:
    products = [
        {
            "id": 1,
            "brand": "Ray-Ban",
            "model": "Wayfarer Classic",
            "description": "The iconic acetate wayfarer with a bold, timeless silhouette.",
            "category": "sunglasses",
            "gender": "unisex",
            "price": 154.0,
            "discount_price": 129.0,
            "frame_shape": "square",
            "frame_color": "black",
            "frame_material": "acetate",
            "images": ["https://images.unsplash.com/photo-1511499767150-a48a237f0083?q=80&w=1200&auto=format&fit=crop"],
            "rating": 4.8,
            "review_count": 1240,
            "in_stock": True,
            "features": ["UV400 protection", "Polarized lenses"],
            "size": {"lens_width": 50, "bridge_width": 22, "temple_length": 150},
        },
        {
            "id": 2,
            "brand": "Oakley",
            "model": "Holbrook",
            "description": "Lightweight sport frame with a classic, squared-off design.",
            "category": "sunglasses",
            "gender": "men",
            "price": 163.0,
            "frame_shape": "rectangle",
            "frame_color": "matte black",
            "frame_material": "o-matter",
            "images": ["https://images.unsplash.com/photo-1572635196237-14b3f281503f?q=80&w=1200&auto=format&fit=crop"],
            "rating": 4.6,
            "review_count": 860,
            "in_stock": True,
            "features": ["Prizm lenses", "Impact resistant"],
            "size": {"lens_width": 55, "bridge_width": 18, "temple_length": 137},
        },
        {
            "id": 3,
            "brand": "Warby Parker",
            "model": "Durand",
            "description": "Round acetate eyeglasses with keyhole bridge for an easy fit.",
            "category": "eyeglasses",
            "gender": "unisex",
            "price": 95.0,
            "frame_shape": "round",
            "frame_color": "tortoise",
            "frame_material": "acetate",
            "images": ["https://images.unsplash.com/photo-1574258495973-f010dfbb5371?q=80&w=1200&auto=format&fit=crop"],
            "rating": 4.5,
            "review_count": 312,
            "in_stock": True,
            "features": ["Anti-reflective coating", "Scratch resistant"],
            "size": {"lens_width": 49, "bridge_width": 20, "temple_length": 145},
        },
        {
            "id": 4,
            "brand": "Persol",
            "model": "PO3019S",
            "description": "Italian-made cat eye with the signature arrow hinge.",
            "category": "sunglasses",
            "gender": "women",
            "price": 240.0,
            "discount_price": 199.0,
            "frame_shape": "cat-eye",
            "frame_color": "havana",
            "frame_material": "acetate",
            "images": ["https://images.unsplash.com/photo-1577803645773-f96470509666?q=80&w=1200&auto=format&fit=crop"],
            "rating": 4.7,
            "review_count": 198,
            "in_stock": True,
            "features": ["Crystal lenses", "Meflecto temples"],
            "size": {"lens_width": 52, "bridge_width": 19, "temple_length": 140},
        },
        {
            "id": 5,
            "brand": "Warby Parker",
            "model": "Haskell",
            "description": "Rectangular titanium eyeglasses, featherlight for all-day wear.",
            "category": "eyeglasses",
            "gender": "men",
            "price": 145.0,
            "frame_shape": "rectangle",
            "frame_color": "silver",
            "frame_material": "titanium",
            "images": ["https://images.unsplash.com/photo-1591076482161-42ce6da69f67?q=80&w=1200&auto=format&fit=crop"],
            "rating": 4.3,
            "review_count": 87,
            "in_stock": True,
            "features": ["Adjustable nose pads"],
            "size": {"lens_width": 53, "bridge_width": 18, "temple_length": 145},
        },
        {
            "id": 6,
            "brand": "Ray-Ban",
            "model": "Aviator Classic",
            "description": "Gold metal aviator with green G-15 lenses.",
            "category": "sunglasses",
            "gender": "unisex",
            "price": 171.0,
            "frame_shape": "aviator",
            "frame_color": "gold",
            "frame_material": "metal",
            "images": ["https://images.unsplash.com/photo-1473496169904-658ba7c44d8a?q=80&w=1200&auto=format&fit=crop"],
            "rating": 4.9,
            "review_count": 2015,
            "in_stock": False,
            "features": ["UV400 protection", "Glass lenses"],
            "size": {"lens_width": 58, "bridge_width": 14, "temple_length": 135},
        },
    ]
    return [Product.model_validate(p) for p in products]


def ensure_seeded() -> dict:
    created = {"products": 0}
    store = getattr(app.state, "store", None)
    if store is None:
        return created
    try:
        if store.count_products() == 0:
            created["products"] = store.insert_products(_seed_payload())
            logger.info("catalog_seeded", products=created["products"])
    except StoreUnavailable as e:
        # Best-effort; don't crash on seed failure
        logger.warning("seed_skipped", error=str(e))
    return created

# ---------
# Root/Test
# ---------


@app.get("/")
def read_root():
    return {"message": "Eyewear Shop API is running"}


@app.get("/test")
def test_database(request: Request):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    store = getattr(request.app.state, "store", None)
    if store is None:
        response["database"] = "⚠️  Available but not initialized"
        return response
    try:
        response["collections"] = store.collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except StoreUnavailable as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
    return response

# ---------------
# Catalog Endpoints
# ---------------


@app.get("/api/products")
def list_products(
    request: Request,
    category: Optional[str] = None,
    gender: Optional[str] = None,
    frame_shape: List[str] = Query(default=[]),
    frame_color: List[str] = Query(default=[]),
    brand: List[str] = Query(default=[]),
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
):
    price_range = None
    if min_price is not None or max_price is not None:
        price_range = PriceRange(
            min=min_price if min_price is not None else 0,
            max=max_price if max_price is not None else float("inf"),
        )
    spec = FilterSpec(
        category=category,
        gender=gender,
        frame_shape=frame_shape,
        frame_color=frame_color,
        brand=brand,
        price_range=price_range,
        search=search,
        sort_by=sort_by,
    )
    return catalog_service(request).query(spec)


@app.get("/api/products/filters")
def product_filter_options(request: Request):
    return catalog_service(request).filter_options()


@app.get("/api/products/search")
def search_products(request: Request, q: str = "", limit: int = Query(8, ge=1, le=50)):
    return catalog_service(request).quick_search(q, limit)


@app.get("/api/products/{product_id}")
def get_product(request: Request, product_id: int):
    return catalog_service(request).get(product_id)


@app.get("/api/products/{product_id}/related")
def related_products(request: Request, product_id: int, limit: int = Query(4, ge=1, le=20)):
    return catalog_service(request).related(product_id, limit)

# ---------------
# Cart Endpoints
# ---------------


class AddToCart(BaseModel):
    product_id: int
    quantity: int = 1
    lens_type: str = "standard"


class UpdateQuantity(BaseModel):
    quantity: int


@app.get("/api/cart")
def get_cart(request: Request):
    return cart_service(request).get_all()


@app.get("/api/cart/count")
def get_cart_count(request: Request):
    return {"count": cart_service(request).get_item_count()}


@app.get("/api/cart/total")
def get_cart_total(request: Request):
    return cart_service(request).get_total()


@app.post("/api/cart/items", status_code=201)
def add_to_cart(request: Request, payload: AddToCart):
    return cart_service(request).add_item(payload.product_id, payload.quantity, payload.lens_type)


@app.put("/api/cart/items/{product_id}")
def update_cart_item(request: Request, product_id: int, payload: UpdateQuantity):
    return cart_service(request).update_quantity(product_id, payload.quantity)


@app.delete("/api/cart/items/{product_id}")
def remove_from_cart(request: Request, product_id: int):
    return cart_service(request).remove_item(product_id)


@app.delete("/api/cart")
def clear_cart(request: Request):
    return cart_service(request).clear()

# -------------------------
# Pricing endpoints (quote)
# -------------------------


class QuoteItem(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)
    lens_type: LensType = "standard"


class QuoteRequest(BaseModel):
    items: List[QuoteItem]


@app.post("/api/pricing/quote")
def pricing_quote(request: Request, payload: QuoteRequest):
    catalog = catalog_service(request)
    lines = []
    for item in payload.items:
        product = catalog.find(item.product_id)
        if product is None:
            raise ProductNotFound(item.product_id)
        lines.append((product, item.quantity, item.lens_type))
    return price_lines(lines)

# ---------------
# Orders Endpoints
# ---------------


class CheckoutRequest(BaseModel):
    shipping_address: ShippingAddress
    contact_info: ContactInfo


@app.post("/api/orders", status_code=201)
def create_order(request: Request, payload: CheckoutRequest):
    return order_service(request).create(payload.shipping_address, payload.contact_info)


@app.get("/api/orders")
def list_orders(request: Request):
    return order_service(request).list()


@app.get("/api/orders/{order_id}")
def get_order(request: Request, order_id: int):
    return order_service(request).get(order_id)

# ---------------
# Seed demo data
# ---------------


@app.post("/api/seed")
def seed_demo():
    """Seed the demo catalog if the product collection is empty."""
    created = ensure_seeded()
    return {"seeded": created}

# Connect and auto-seed on startup if empty (idempotent)


@app.on_event("startup")
async def startup_event():
    if getattr(app.state, "store", None) is None:
        configure(MongoStore(get_database()))
    ensure_seeded()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
