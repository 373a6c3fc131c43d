"""
MongoDB access for the eyewear shop.

The connection comes from DATABASE_URL / DATABASE_NAME. When either is
missing, get_database() returns None and every MongoStore call raises
StoreUnavailable, which the services treat as "no data" for reads.

MongoStore is the only record store the services talk to. It maps raw
documents to the models in schemas.py and skips records that fail
validation instead of passing them inward.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError as SchemaError
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import StoreUnavailable
from schemas import CartItem, Order, Product

logger = structlog.get_logger(__name__)

PRODUCTS = "product"
CART_ITEMS = "cartitem"
ORDERS = "order"


def get_database(url: Optional[str] = None, name: Optional[str] = None) -> Optional[Database]:
    url = url or os.getenv("DATABASE_URL")
    name = name or os.getenv("DATABASE_NAME")
    if not url or not name:
        logger.warning("database_not_configured")
        return None
    client = MongoClient(url, serverSelectionTimeoutMS=5000, tz_aware=True)
    return client[name]


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document, stamping created_at / updated_at. Returns the Mongo _id as str."""
    if db is None:
        raise StoreUnavailable("Database not available")
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = datetime.now(timezone.utc)
    data_dict["created_at"] = data_dict.get("created_at") or now
    data_dict["updated_at"] = now
    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    if db is None:
        raise StoreUnavailable("Database not available")
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def strip_id(doc: dict) -> dict:
    d = dict(doc)
    d.pop("_id", None)
    return d


class MongoStore:
    """Record store over the product / cartitem / order collections."""

    def __init__(self, db: Optional[Database]):
        self.db = db

    def _collection(self, name: str):
        if self.db is None:
            raise StoreUnavailable("Database not available")
        return self.db[name]

    def _parse(self, model, docs) -> list:
        records = []
        for doc in docs:
            try:
                records.append(model.model_validate(strip_id(doc)))
            except SchemaError as e:
                logger.warning("record_malformed", collection=model.__name__.lower(), record_id=doc.get("id"), errors=e.error_count())
        return records

    # Products

    def fetch_products(self) -> List[Product]:
        try:
            docs = get_documents(self.db, PRODUCTS)
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        # Catalog order is insertion order, which is id order
        return sorted(self._parse(Product, docs), key=lambda p: p.id)

    def fetch_product_by_id(self, product_id: int) -> Optional[Product]:
        try:
            doc = self._collection(PRODUCTS).find_one({"id": product_id})
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        if doc is None:
            return None
        parsed = self._parse(Product, [doc])
        return parsed[0] if parsed else None

    def count_products(self) -> int:
        try:
            return self._collection(PRODUCTS).count_documents({})
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e

    def insert_products(self, products: List[Product]) -> int:
        if not products:
            return 0
        try:
            self._collection(PRODUCTS).insert_many([p.model_dump() for p in products])
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        return len(products)

    # Cart

    def fetch_cart_items(self) -> List[CartItem]:
        try:
            docs = get_documents(self.db, CART_ITEMS)
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        return sorted(self._parse(CartItem, docs), key=lambda i: i.id)

    def create_cart_item(self, item: CartItem) -> CartItem:
        try:
            create_document(self.db, CART_ITEMS, item)
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        return item

    def update_cart_item(self, item_id: int, fields: Dict[str, Any]) -> None:
        update = dict(fields)
        update["updated_at"] = datetime.now(timezone.utc)
        try:
            self._collection(CART_ITEMS).update_one({"id": item_id}, {"$set": update})
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e

    def delete_cart_item(self, item_id: int) -> None:
        try:
            self._collection(CART_ITEMS).delete_one({"id": item_id})
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e

    def clear_cart_items(self) -> None:
        try:
            self._collection(CART_ITEMS).delete_many({})
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e

    # Orders

    def fetch_orders(self) -> List[Order]:
        try:
            docs = get_documents(self.db, ORDERS)
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        return sorted(self._parse(Order, docs), key=lambda o: o.id)

    def fetch_order_by_id(self, order_id: int) -> Optional[Order]:
        try:
            doc = self._collection(ORDERS).find_one({"id": order_id})
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        if doc is None:
            return None
        parsed = self._parse(Order, [doc])
        return parsed[0] if parsed else None

    def max_order_id(self) -> int:
        """Highest stored order id, malformed records included. 0 when there are none."""
        try:
            doc = self._collection(ORDERS).find_one({"id": {"$type": "number"}}, sort=[("id", -1)])
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        return int(doc["id"]) if doc else 0

    def create_order(self, order: Order) -> Order:
        try:
            create_document(self.db, ORDERS, order)
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        return order

    def collection_names(self) -> List[str]:
        try:
            return self._collection(PRODUCTS).database.list_collection_names()
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
