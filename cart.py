"""
Per-user cart mutations.

The cart lives inside the user document as an ordered list of
``{"product": ObjectId, "quantity": int}`` lines, at most one per product.
"""
from typing import Any, Dict, List

from pymongo.database import Database
import structlog

from catalog import resolve_lines
from database import PRODUCTS, USERS, parse_object_id
from errors import NotFound, ValidationFailed
from schemas import MAX_CART_QUANTITY

logger = structlog.get_logger(__name__)

USER_NOT_FOUND = "User not found"


def load_user(db: Database, user_id: str) -> Dict[str, Any]:
    oid = parse_object_id(user_id)
    user = db[USERS].find_one({"_id": oid}) if oid else None
    if not user:
        raise NotFound(USER_NOT_FOUND)
    return user


def _save_cart(db: Database, user: Dict[str, Any]) -> None:
    db[USERS].update_one({"_id": user["_id"]}, {"$set": {"cart": user["cart"]}})


def get_cart(db: Database, user_id: str) -> List[Dict[str, Any]]:
    user = load_user(db, user_id)
    return resolve_lines(db, user.get("cart", []))


def upsert_item(db: Database, user_id: str, product_id: str, quantity: int) -> List[Dict[str, Any]]:
    """Set the quantity of ``product_id`` in the cart, adding the line if needed.

    The quantity overwrites any previous value; it is never added to it.
    """
    if not 1 <= quantity <= MAX_CART_QUANTITY:
        raise ValidationFailed(f"Quantity must be between 1 and {MAX_CART_QUANTITY}")
    user = load_user(db, user_id)
    product_oid = parse_object_id(product_id)
    if product_oid is None or not db[PRODUCTS].find_one({"_id": product_oid}, {"_id": 1}):
        raise NotFound("Product not found")

    cart = user.setdefault("cart", [])
    line = next((item for item in cart if item["product"] == product_oid), None)
    if line is not None:
        line["quantity"] = quantity
    else:
        cart.append({"product": product_oid, "quantity": quantity})
    _save_cart(db, user)

    logger.debug("cart.upserted", user_id=user_id, product_id=product_id, quantity=quantity)
    return resolve_lines(db, cart)


def remove_item(db: Database, user_id: str, product_id: str) -> List[Dict[str, Any]]:
    """Drop the line for ``product_id``; a product not in the cart is a no-op."""
    user = load_user(db, user_id)
    cart = user.get("cart", [])
    remaining = [item for item in cart if str(item["product"]) != product_id]
    if len(remaining) != len(cart):
        user["cart"] = remaining
        _save_cart(db, user)
        logger.debug("cart.removed", user_id=user_id, product_id=product_id)
    return resolve_lines(db, remaining)
