"""Tests for demo data seeding."""

from click.testing import CliRunner

import seed
from database import ORDERS, PRODUCTS, USERS
from schemas import Currency, OrderStatus
from security import PasswordHasher
from seed import SIZES, generate_products, generate_users, make_faker, seed_orders, seed_products_if_empty


class TestGenerateProducts:
    def test_generates_valid_products(self):
        items = generate_products(20, make_faker(7))
        assert len(items) == 20
        for product in items:
            assert product.category in seed.CATEGORY_PREFIXES
            assert product.name.split(" ", 1)[1] in seed.CATEGORY_SUFFIXES[product.category]
            assert 20 <= product.price <= 150
            assert product.size in SIZES
            assert product.description
            assert product.image_url in seed.IMAGE_URLS

    def test_seeded_faker_is_repeatable(self):
        assert generate_products(5, make_faker(1)) == generate_products(5, make_faker(1))


class TestGenerateUsers:
    def test_unique_users_with_bcrypt_hashes(self):
        users = generate_users(5, PasswordHasher(), make_faker(3))
        assert len({u.username for u in users}) == 5
        assert len({u.email for u in users}) == 5
        for user in users:
            assert user.password_hash.startswith("$2b$")
            assert user.cart == []
            assert user.order_history == []


class TestSeedOrders:
    def test_orders_match_prices_and_history(self, db, products, user_id):
        assert seed_orders(db, 6, make_faker(11)) == 6

        prices = {p["_id"]: p["price"] for p in db[PRODUCTS].find()}
        orders = list(db[ORDERS].find())
        assert len(orders) == 6
        for order in orders:
            assert 1 <= len(order["products"]) <= 3
            assert len({line["product"] for line in order["products"]}) == len(order["products"])
            expected = sum(prices[line["product"]] * line["quantity"] for line in order["products"])
            assert order["totalAmount"] == round(expected, 2)
            assert order["currency"] in [c.value for c in Currency]
            assert order["status"] in [s.value for s in OrderStatus]
            assert order["user"] == db[USERS].find_one()["_id"]
            assert order["shippingAddress"]["zipCode"]

        user = db[USERS].find_one()
        assert sorted(user["orderHistory"]) == sorted(o["_id"] for o in orders)

    def test_needs_users_and_products(self, db, products):
        assert seed_orders(db, 3) == 0
        assert db[ORDERS].count_documents({}) == 0


class TestSeedIfEmpty:
    def test_seeds_empty_catalog_once(self, db):
        assert seed_products_if_empty(db, count=4) == 4
        assert seed_products_if_empty(db, count=4) == 0
        doc = db[PRODUCTS].find_one()
        assert {"name", "category", "price", "size", "description", "imageUrl"} <= set(doc)


class TestCli:
    def test_seed_and_clear(self, db, monkeypatch):
        monkeypatch.setattr(seed, "connect", lambda uri, db_name: db)
        db[USERS].insert_one({"username": "x"})
        db[ORDERS].insert_one({"status": "Ordered"})

        runner = CliRunner()
        result = runner.invoke(seed.cli, [
            "--uri", "mongodb://localhost/test", "--products", "3", "--users", "0", "--orders", "0", "--clear",
        ])

        assert result.exit_code == 0, result.output
        assert "3 products seeded" in result.output
        assert db[PRODUCTS].count_documents({}) == 3
        assert db[USERS].count_documents({}) == 0
        assert db[ORDERS].count_documents({}) == 0

    def test_seeds_users_and_orders(self, db, monkeypatch):
        monkeypatch.setattr(seed, "connect", lambda uri, db_name: db)

        runner = CliRunner()
        result = runner.invoke(seed.cli, [
            "--uri", "mongodb://localhost/test", "--products", "5", "--users", "2", "--orders", "4", "--seed", "5",
        ])

        assert result.exit_code == 0, result.output
        assert "2 users seeded" in result.output
        assert "4 orders seeded" in result.output
        assert db[USERS].count_documents({}) == 2
        assert db[ORDERS].count_documents({}) == 4
        histories = sum(len(u["orderHistory"]) for u in db[USERS].find())
        assert histories == 4

    def test_orders_without_users_are_skipped(self, db, monkeypatch):
        monkeypatch.setattr(seed, "connect", lambda uri, db_name: db)

        result = CliRunner().invoke(seed.cli, [
            "--uri", "mongodb://localhost/test", "--products", "2", "--users", "0", "--orders", "3",
        ])

        assert result.exit_code == 0, result.output
        assert "0 orders seeded" in result.output
        assert db[ORDERS].count_documents({}) == 0
