"""Order history and status transitions.

Ordered may move to Delivered or Cancelled; both of those are final.
Only the user who placed an order may change it.
"""
from typing import Any, Dict, List

from pymongo import DESCENDING
from pymongo.database import Database
import structlog

from catalog import resolve_order
from database import ORDERS, parse_object_id
from errors import Forbidden, NotFound, ValidationFailed
from schemas import OrderStatus

logger = structlog.get_logger(__name__)

TERMINAL_STATUSES = {
    OrderStatus.DELIVERED.value: "Delivered orders cannot be updated",
    OrderStatus.CANCELLED.value: "Cancelled orders cannot be updated",
}


def order_history(db: Database, user_id: str) -> List[Dict[str, Any]]:
    """The user's orders, newest first."""
    oid = parse_object_id(user_id)
    if oid is None:
        return []
    cursor = db[ORDERS].find({"user": oid}).sort("orderDate", DESCENDING)
    return [resolve_order(db, order) for order in cursor]


def update_status(db: Database, order_id: str, requester_id: str, new_status: str) -> Dict[str, Any]:
    oid = parse_object_id(order_id)
    order = db[ORDERS].find_one({"_id": oid}) if oid else None
    if not order:
        raise NotFound("Order not found")

    if str(order["user"]) != str(requester_id):
        raise Forbidden("You don't have permission to update this order")

    current = order.get("status", OrderStatus.ORDERED.value)
    if current in TERMINAL_STATUSES:
        raise ValidationFailed(TERMINAL_STATUSES[current])

    try:
        status = OrderStatus(new_status).value
    except ValueError:
        raise ValidationFailed("Invalid order status")

    db[ORDERS].update_one({"_id": oid}, {"$set": {"status": status}})
    order["status"] = status
    logger.info("order.status_changed", order_id=order_id, previous=current, status=status)
    return resolve_order(db, order)
