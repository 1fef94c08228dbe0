"""
Checkout: turn the caller's cart into an order, then empty the cart.

The sequence is two writes with no transaction around them:

1. insert the order (a copy of the current cart lines);
2. clear the cart and append the order id to ``orderHistory``, in one
   update of the user document.

If (1) fails nothing has changed and the caller may retry. If (2) fails the
order exists while the cart still holds its lines; that state is logged as
``checkout.cart_clear_failed`` and the error is re-raised.

``total_amount`` and ``currency`` are stored exactly as the client sent them.
"""
from typing import Any, Dict

from pymongo.database import Database
from pymongo.errors import PyMongoError
import structlog

from cart import load_user
from catalog import resolve_order
from database import ORDERS, USERS, create_document
from errors import ValidationFailed
from schemas import CartLine, Currency, Order, ShippingAddress

logger = structlog.get_logger(__name__)


def checkout(
    db: Database,
    user_id: str,
    shipping_address: ShippingAddress,
    currency: Currency,
    total_amount: float,
) -> Dict[str, Any]:
    user = load_user(db, user_id)
    cart = user.get("cart") or []
    if not cart:
        raise ValidationFailed("Cart is empty")

    order = Order(
        user=user["_id"],
        products=[CartLine(product=line["product"], quantity=line["quantity"]) for line in cart],
        total_amount=total_amount,
        currency=currency,
        shipping_address=shipping_address,
    )
    order_id = create_document(db, ORDERS, order)

    try:
        result = db[USERS].update_one(
            {"_id": user["_id"]},
            {"$set": {"cart": []}, "$push": {"orderHistory": order_id}},
        )
    except PyMongoError:
        logger.error(
            "checkout.cart_clear_failed",
            user_id=user_id,
            order_id=str(order_id),
            exc_info=True,
        )
        raise
    if result.matched_count == 0:
        logger.error(
            "checkout.cart_clear_failed",
            user_id=user_id,
            order_id=str(order_id),
            reason="user document disappeared after order insert",
        )

    logger.info(
        "checkout.order_created",
        user_id=user_id,
        order_id=str(order_id),
        lines=len(order.products),
        total_amount=total_amount,
        currency=order.currency,
    )
    return resolve_order(db, db[ORDERS].find_one({"_id": order_id}))
