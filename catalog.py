"""
Catalog queries: filtered/paginated listing, lookup by id and name search.

Also owns product-detail resolution for cart and order lines, since both
embed product references only.
"""
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field
from pymongo.database import Database

from database import PRODUCTS, get_documents, parse_object_id, serialize_doc
from errors import NotFound, ValidationFailed
from schemas import ProductFilters

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
# keeps skip = (page - 1) * limit well inside a BSON int64
MAX_PAGE = 10 ** 9

# Fields exposed when a product is embedded in a cart or order line
PRODUCT_SUMMARY = {"name": 1, "price": 1, "imageUrl": 1}


class ProductPage(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)

    def pagination(self) -> Dict[str, int]:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


def _as_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_pagination(page: Any = None, limit: Any = None) -> Tuple[int, int]:
    """1 <= page <= MAX_PAGE and 1 <= limit <= MAX_LIMIT; unparsable values use the defaults."""
    page_num = min(MAX_PAGE, max(1, _as_int(page, DEFAULT_PAGE)))
    limit_num = min(MAX_LIMIT, max(1, _as_int(limit, DEFAULT_LIMIT)))
    return page_num, limit_num


def build_filter(filters: ProductFilters) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if filters.category:
        query["category"] = filters.category
    if filters.min_price is not None or filters.max_price is not None:
        price: Dict[str, float] = {}
        if filters.min_price is not None:
            price["$gte"] = filters.min_price
        if filters.max_price is not None:
            price["$lte"] = filters.max_price
        query["price"] = price
    if filters.size:
        query["size"] = filters.size
    return query


def list_products(db: Database, filters: ProductFilters, page: Any = None, limit: Any = None) -> ProductPage:
    page_num, limit_num = clamp_pagination(page, limit)
    query = build_filter(filters)
    skip = (page_num - 1) * limit_num
    items = list(db[PRODUCTS].find(query).skip(skip).limit(limit_num))
    total = db[PRODUCTS].count_documents(query)
    return ProductPage(items=[serialize_doc(p) for p in items], total=total, page=page_num, limit=limit_num)


def get_product(db: Database, product_id: str) -> Dict[str, Any]:
    oid = parse_object_id(product_id)
    if oid is None:
        raise ValidationFailed("Invalid product ID format")
    product = db[PRODUCTS].find_one({"_id": oid})
    if not product:
        raise NotFound("Product not found")
    return serialize_doc(product)


def search_products(db: Database, query: Optional[str]) -> List[Dict[str, Any]]:
    """Case-insensitive substring match on the product name."""
    term = (query or "").strip()
    if not term:
        raise ValidationFailed("Query parameter is required")
    matches = get_documents(db, PRODUCTS, {"name": {"$regex": re.escape(term), "$options": "i"}})
    return [serialize_doc(p) for p in matches]


def resolve_lines(db: Database, lines: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Replace each line's product reference with a product summary.

    Lines keep their order. A reference to a product that no longer exists
    resolves to ``None``.
    """
    lines = list(lines)
    ids = [line["product"] for line in lines]
    found = {
        p["_id"]: serialize_doc(p)
        for p in db[PRODUCTS].find({"_id": {"$in": ids}}, PRODUCT_SUMMARY)
    } if ids else {}
    return [{"product": found.get(line["product"]), "quantity": line["quantity"]} for line in lines]


def resolve_order(db: Database, order: Dict[str, Any]) -> Dict[str, Any]:
    resolved = serialize_doc(order)
    resolved["products"] = resolve_lines(db, order.get("products", []))
    return resolved
