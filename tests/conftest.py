"""Pytest fixtures for the storefront API tests."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import PRODUCTS, USERS, ensure_indexes
from main import create_app
from security import PasswordHasher, TokenService
from tests.helpers import JWT_SECRET, PASSWORD, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def db():
    database = mongomock.MongoClient().storefront_test
    ensure_indexes(database)
    return database


@pytest.fixture
def passwords():
    return PasswordHasher(rounds=10)


@pytest.fixture
def tokens():
    return TokenService(JWT_SECRET)


@pytest.fixture
def client(settings, db):
    return TestClient(create_app(settings, db))


@pytest.fixture
def products(db):
    """Three catalog entries; returns their ids as strings, in insertion order."""
    docs = [
        {"name": "ActiveFit™ T-Shirt", "category": "Top", "price": 25.0, "size": "M",
         "description": "Cotton tee", "imageUrl": "https://img.example/tee.webp"},
        {"name": "FlexWear™ Leggings", "category": "Pants", "price": 60.0, "size": "S",
         "description": "Stretch leggings", "imageUrl": "https://img.example/leggings.webp"},
        {"name": "ChicStyle™ Maxi Dress", "category": "Dress", "price": 120.0, "size": "L",
         "description": "Long dress", "imageUrl": "https://img.example/dress.webp"},
    ]
    result = db[PRODUCTS].insert_many(docs)
    return [str(i) for i in result.inserted_ids]


@pytest.fixture
def user_id(db, passwords):
    """A stored user with an empty cart, created without going through the API."""
    result = db[USERS].insert_one({
        "username": "bob",
        "email": "bob@example.com",
        "passwordHash": passwords.hash(PASSWORD),
        "cart": [],
        "orderHistory": [],
    })
    return str(result.inserted_id)
