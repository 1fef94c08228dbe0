"""Tests for order history and status transitions."""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from database import ORDERS
from errors import Forbidden, NotFound, ValidationFailed
from orders import order_history, update_status
from tests.helpers import SHIPPING


def insert_order(db, user_id, product_id, status="Ordered", when=None):
    doc = {
        "user": ObjectId(user_id),
        "products": [{"product": ObjectId(product_id), "quantity": 1}],
        "totalAmount": 25.0,
        "currency": "USD",
        "shippingAddress": dict(SHIPPING),
        "status": status,
        "orderDate": when or datetime.now(timezone.utc),
    }
    return str(db[ORDERS].insert_one(doc).inserted_id)


class TestUpdateStatus:
    @pytest.mark.parametrize("target", ["Delivered", "Cancelled", "Ordered"])
    def test_owner_can_move_an_open_order(self, db, user_id, products, target):
        order_id = insert_order(db, user_id, products[0])
        order = update_status(db, order_id, user_id, target)
        assert order["status"] == target
        assert order["products"][0]["product"]["name"] == "ActiveFit™ T-Shirt"
        assert db[ORDERS].find_one({"_id": ObjectId(order_id)})["status"] == target

    @pytest.mark.parametrize("terminal", ["Delivered", "Cancelled"])
    @pytest.mark.parametrize("target", ["Ordered", "Delivered", "Cancelled"])
    def test_terminal_states_are_final(self, db, user_id, products, terminal, target):
        order_id = insert_order(db, user_id, products[0], status=terminal)
        with pytest.raises(ValidationFailed, match=f"{terminal} orders cannot be updated"):
            update_status(db, order_id, user_id, target)
        assert db[ORDERS].find_one({"_id": ObjectId(order_id)})["status"] == terminal

    def test_non_owner_forbidden(self, db, user_id, products):
        order_id = insert_order(db, user_id, products[0])
        with pytest.raises(Forbidden):
            update_status(db, order_id, str(ObjectId()), "Cancelled")

    def test_ownership_checked_before_terminal_state(self, db, user_id, products):
        order_id = insert_order(db, user_id, products[0], status="Delivered")
        with pytest.raises(Forbidden):
            update_status(db, order_id, str(ObjectId()), "Cancelled")

    def test_unknown_order(self, db, user_id):
        with pytest.raises(NotFound):
            update_status(db, str(ObjectId()), user_id, "Delivered")

    def test_malformed_order_id(self, db, user_id):
        with pytest.raises(NotFound):
            update_status(db, "12345", user_id, "Delivered")

    def test_unknown_status(self, db, user_id, products):
        order_id = insert_order(db, user_id, products[0])
        with pytest.raises(ValidationFailed):
            update_status(db, order_id, user_id, "Shipped")


class TestOrderHistory:
    def test_newest_first_and_only_own_orders(self, db, user_id, products):
        now = datetime.now(timezone.utc)
        old = insert_order(db, user_id, products[0], when=now - timedelta(days=2))
        new = insert_order(db, user_id, products[1], when=now)
        insert_order(db, str(ObjectId()), products[2])

        history = order_history(db, user_id)
        assert [o["id"] for o in history] == [new, old]
        assert history[0]["products"][0]["product"]["name"] == "FlexWear™ Leggings"

    def test_empty(self, db, user_id):
        assert order_history(db, user_id) == []
