"""Demo data and the ``storefront-seed`` command.

Products, users and orders are generated with Faker. Seeded users get a
random bcrypt-hashed password nobody knows; they exist to own the demo
orders.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import click
from faker import Faker
from pymongo.database import Database
from pymongo.errors import PyMongoError
import structlog

from database import ORDERS, PRODUCTS, USERS, connect, create_document
from schemas import CartLine, Currency, Order, OrderStatus, Product, ShippingAddress, User
from security import PasswordHasher

logger = structlog.get_logger(__name__)

DEMO_PRODUCT_COUNT = 50
DEMO_USER_COUNT = 20
DEMO_ORDER_COUNT = 30
MAX_ORDER_LINES = 5
MAX_LINE_QUANTITY = 5

CATEGORY_PREFIXES = {
    "Top": ["ActiveFit™", "PowerFlex™", "LuxeComfort™"],
    "Pants": ["FlexWear™", "PerformanceGear™", "Athleisure™"],
    "Dress": ["ChicStyle™", "ElegantLine™", "EveningGlam™"],
}
CATEGORY_SUFFIXES = {
    "Top": ["T-Shirt", "Tank Top", "Blouse"],
    "Pants": ["Leggings", "Joggers", "Trousers"],
    "Dress": ["Maxi Dress", "Cocktail Dress", "Summer Dress"],
}
SIZES = ["S", "M", "L", "XL"]
IMAGE_URLS = [
    "https://i.postimg.cc/DwsJYggg/cs606-ylw-a0.webp",
    "https://i.postimg.cc/cLy468qk/fe8eb1c065800b123a422b7abf3e5819.webp",
    "https://i.postimg.cc/FHMPMNLL/815561a57ec37cfa21c13362d809406a.jpg",
    "https://i.postimg.cc/PfWDth8j/the-apricot-solid-button-knit-top-apricot-tops-u8zuyg-999314-650x.webp",
    "https://i.postimg.cc/RCtbT3Jz/5c6588bdd9130fe0a0f1681fbcb62f75.webp",
]


def make_faker(seed: Optional[int] = None) -> Faker:
    fake = Faker()
    if seed is not None:
        fake.seed_instance(seed)
    return fake


def generate_products(count: int, fake: Optional[Faker] = None) -> List[Product]:
    fake = fake or make_faker()
    items = []
    for _ in range(count):
        category = fake.random_element(list(CATEGORY_PREFIXES))
        prefix = fake.random_element(CATEGORY_PREFIXES[category])
        suffix = fake.random_element(CATEGORY_SUFFIXES[category])
        items.append(Product(
            name=f"{prefix} {suffix}",
            category=category,
            price=fake.random_int(min=2000, max=15000) / 100,
            size=fake.random_element(SIZES),
            description=fake.paragraph(nb_sentences=2),
            image_url=fake.random_element(IMAGE_URLS),
        ))
    return items


def generate_users(count: int, passwords: PasswordHasher, fake: Optional[Faker] = None) -> List[User]:
    fake = fake or make_faker()
    return [
        User(
            username=fake.unique.user_name(),
            email=fake.unique.email(),
            password_hash=passwords.hash(fake.password(length=12)),
        )
        for _ in range(count)
    ]


def generate_address(fake: Faker) -> ShippingAddress:
    return ShippingAddress(
        user_name=fake.name(),
        street_address=fake.street_address(),
        city=fake.city(),
        province=fake.state(),
        zip_code=fake.postcode(),
    )


def generate_order(user: Dict[str, Any], products: List[Dict[str, Any]], fake: Faker) -> Order:
    """A past order for ``user`` whose total matches its lines."""
    size = min(fake.random_int(1, MAX_ORDER_LINES), len(products))
    picked = [products[i] for i in fake.random_sample(list(range(len(products))), length=size)]
    lines = [CartLine(product=p["_id"], quantity=fake.random_int(1, MAX_LINE_QUANTITY)) for p in picked]
    total = sum(line.quantity * p["price"] for line, p in zip(lines, picked))
    return Order(
        user=user["_id"],
        products=lines,
        total_amount=round(total, 2),
        currency=fake.random_element(list(Currency)),
        shipping_address=generate_address(fake),
        status=fake.random_element(list(OrderStatus)),
        order_date=fake.date_time_between(start_date="-1y", end_date="now", tzinfo=timezone.utc),
    )


def insert_products(db: Database, products: List[Product]) -> int:
    if not products:
        return 0
    now = datetime.now(timezone.utc)
    docs = [{**p.model_dump(by_alias=True), "createdAt": now} for p in products]
    return len(db[PRODUCTS].insert_many(docs).inserted_ids)


def insert_users(db: Database, users: List[User]) -> int:
    if not users:
        return 0
    return len(db[USERS].insert_many([u.model_dump(by_alias=True) for u in users]).inserted_ids)


def seed_orders(db: Database, count: int, fake: Optional[Faker] = None) -> int:
    """Insert ``count`` orders for random existing users and record them in
    each owner's ``orderHistory``. Needs users and products to exist."""
    fake = fake or make_faker()
    users = list(db[USERS].find({}, {"_id": 1}))
    products = list(db[PRODUCTS].find({}, {"_id": 1, "price": 1}))
    if count and (not users or not products):
        logger.warning("seed.orders_skipped", users=len(users), products=len(products))
        return 0
    for _ in range(count):
        order = generate_order(fake.random_element(users), products, fake)
        order_id = create_document(db, ORDERS, order)
        db[USERS].update_one({"_id": order.user}, {"$push": {"orderHistory": order_id}})
    return count


def clear_database(db: Database) -> None:
    for name in (PRODUCTS, USERS, ORDERS):
        db[name].delete_many({})
    logger.info("seed.cleared")


def seed_products_if_empty(db: Database, count: int = DEMO_PRODUCT_COUNT) -> int:
    """Insert demo products when the catalog is empty. Returns how many were added."""
    try:
        if db[PRODUCTS].count_documents({}) > 0:
            return 0
        added = insert_products(db, generate_products(count))
    except PyMongoError as exc:
        logger.warning("seed.failed", error=str(exc))
        return 0
    logger.info("seed.products_added", count=added)
    return added


@click.command()
@click.option("--uri", envvar="MONGODB_URI", required=True, help="MongoDB connection string.")
@click.option("--db", "db_name", envvar="MONGODB_DB", default="storefront", show_default=True,
              help="Database used when the URI names none.")
@click.option("--products", "product_count", default=DEMO_PRODUCT_COUNT, show_default=True,
              type=click.IntRange(min=0), help="Number of products to insert.")
@click.option("--users", "user_count", default=DEMO_USER_COUNT, show_default=True,
              type=click.IntRange(min=0), help="Number of users to insert.")
@click.option("--orders", "order_count", default=DEMO_ORDER_COUNT, show_default=True,
              type=click.IntRange(min=0), help="Number of orders to insert for existing users.")
@click.option("--clear", is_flag=True, help="Delete products, users and orders first.")
@click.option("--seed", "rng_seed", type=int, default=None, help="Random seed for repeatable data.")
def cli(
    uri: str,
    db_name: str,
    product_count: int,
    user_count: int,
    order_count: int,
    clear: bool,
    rng_seed: Optional[int],
) -> None:
    """Populate the database with demo products, users and orders."""
    db = connect(uri, db_name)
    fake = make_faker(rng_seed)
    if clear:
        clear_database(db)
        click.echo("Database cleared")
    added = insert_products(db, generate_products(product_count, fake))
    click.echo(f"{added} products seeded")
    added = insert_users(db, generate_users(user_count, PasswordHasher(), fake))
    click.echo(f"{added} users seeded")
    added = seed_orders(db, order_count, fake)
    if order_count and not added:
        click.echo("Ensure users and products are seeded before seeding orders.")
    click.echo(f"{added} orders seeded")


if __name__ == "__main__":
    cli()
