"""
MongoDB access helpers.

The connection is opened once by the app factory and handed to every service
as a ``pymongo.database.Database``; nothing here reads global state.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError
import structlog

logger = structlog.get_logger(__name__)

USERS = "users"
PRODUCTS = "products"
ORDERS = "orders"


def connect(uri: str, default_db: str = "storefront", timeout_ms: int = 5000) -> Database:
    """Open the client, verify the server answers and return the database.

    An unreachable server is fatal: the API has nothing to serve without it.
    """
    client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)
    try:
        client.admin.command("ping")
    except PyMongoError as exc:
        logger.error("database.connect_failed", error=str(exc))
        raise SystemExit(1) from exc
    db = client.get_default_database(default=default_db)
    logger.info("database.connected", database=db.name)
    return db


def ensure_indexes(db: Database) -> None:
    db[USERS].create_index([("email", ASCENDING)], unique=True)
    db[USERS].create_index([("username", ASCENDING)], unique=True)
    db[PRODUCTS].create_index([("category", ASCENDING), ("price", ASCENDING)])
    db[ORDERS].create_index([("user", ASCENDING), ("orderDate", DESCENDING)])


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> ObjectId:
    """Insert a schema instance (or plain dict) and return the new _id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True)
    else:
        doc = dict(data)
    return db[collection_name].insert_one(doc).inserted_id


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for a 24-hex string (or ObjectId), None otherwise."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _to_json(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_to_json(v) for v in value]
    return value


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a stored document JSON friendly: ``_id`` becomes ``id``."""
    if not doc:
        return doc
    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = str(v)
        else:
            out[k] = _to_json(v)
    return out
