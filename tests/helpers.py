"""Shared test helpers: settings factory and API shortcuts."""

from config import Settings

JWT_SECRET = "test-secret"
PASSWORD = "Passw0rd"

SHIPPING = {
    "userName": "Alice Doe",
    "streetAddress": "1 Main St",
    "city": "Toronto",
    "province": "ON",
    "zipCode": "M5V 2T6",
}


def make_settings(**overrides) -> Settings:
    values = {
        "MONGODB_URI": "mongodb://localhost:27017/storefront_test",
        "JWT_SECRET": JWT_SECRET,
        "NODE_ENV": "test",
        "RATE_LIMIT_ENABLED": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def register(client, username="alice", email="alice@x.com", password=PASSWORD):
    return client.post(
        "/api/users/register",
        json={"username": username, "email": email, "password": password},
    )


def auth_headers(client, username="alice", email="alice@x.com", password=PASSWORD):
    """Register (if needed) and log in; returns the Authorization header."""
    register(client, username, email, password)
    response = client.post("/api/users/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
