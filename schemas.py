"""
Database Schemas for the Eyewear Shop

Each Pydantic model stored in MongoDB maps to a collection named after the
lowercase class name: Product -> "product", CartItem -> "cartitem",
Order -> "order". Records carry an integer `id`; Mongo's `_id` never leaves
database.py.

Use these models to validate records coming out of the store before the
services touch them.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Category = Literal["eyeglasses", "sunglasses"]
Gender = Literal["men", "women", "unisex"]
LensType = Literal["standard", "blue-light", "prescription"]

# -----------------
# Catalog
# -----------------

class FrameSize(BaseModel):
    lens_width: float = Field(..., gt=0, description="Lens width in mm")
    bridge_width: float = Field(..., gt=0, description="Bridge width in mm")
    temple_length: Optional[float] = Field(None, gt=0, description="Temple arm length in mm")

class Product(BaseModel):
    id: int = Field(..., gt=0, description="Catalog id, assigned in insertion order")
    brand: str = Field(..., description="Brand name, e.g. 'Ray-Ban'")
    model: str = Field(..., description="Model name, e.g. 'Wayfarer Classic'")
    description: str = Field("", description="Marketing description")
    category: Category
    gender: Gender
    price: float = Field(..., ge=0, description="List price in USD")
    discount_price: Optional[float] = Field(None, ge=0, description="Sale price in USD, if on sale")
    frame_shape: str = Field(..., description="e.g. 'round', 'rectangle', 'aviator'")
    frame_color: str
    frame_material: str
    images: List[str] = Field(..., min_length=1, description="Image URLs, first is the primary image")
    rating: float = Field(0.0, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    in_stock: bool = Field(True, description="Stock availability")
    features: List[str] = Field(default_factory=list)
    size: FrameSize

# -----------------
# Catalog queries
# -----------------

class PriceRange(BaseModel):
    min: float = 0
    max: float = float("inf")

class FilterSpec(BaseModel):
    """Catalog filter. Absent fields, empty lists and "all" mean no filtering."""
    category: Optional[str] = None
    gender: Optional[str] = None
    frame_shape: List[str] = Field(default_factory=list)
    frame_color: List[str] = Field(default_factory=list)
    brand: List[str] = Field(default_factory=list)
    price_range: Optional[PriceRange] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None

class FilterOptions(BaseModel):
    brands: List[str]
    frame_shapes: List[str]
    frame_colors: List[str]
    materials: List[str]
    price_range: Optional[PriceRange] = None

# -----------------
# Cart
# -----------------

class CartItem(BaseModel):
    id: int = Field(..., gt=0, description="Line id, unique within the cart")
    product_id: int = Field(..., gt=0, description="Referenced product id")
    quantity: int = Field(..., ge=1)
    selected_lens_type: LensType = "standard"
    prescription: Optional[Dict[str, Any]] = None

class CartLine(CartItem):
    product: Product

class PriceBreakdown(BaseModel):
    subtotal: float
    shipping: float
    tax: float
    total: float

# ------------
# Order Models
# ------------

class OrderLine(BaseModel):
    product_id: int
    product: Product = Field(..., description="Product snapshot at time of order")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Effective unit price at time of order")
    selected_lens_type: LensType = "standard"
    lens_surcharge: float = Field(0, ge=0)

class ShippingAddress(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)

class ContactInfo(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    phone: str = Field(..., min_length=1)

class Order(BaseModel):
    id: int = Field(..., gt=0)
    items: List[OrderLine]
    subtotal: float = Field(..., ge=0)
    shipping: float = Field(..., ge=0)
    tax: float = Field(..., ge=0)
    total: float = Field(..., ge=0)
    shipping_address: ShippingAddress
    contact_info: ContactInfo
    status: str = Field("Processing", description="Order status, set once at creation")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
