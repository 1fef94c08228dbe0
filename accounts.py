"""Registration, login and profile lookups."""
from typing import Any, Dict

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
import structlog

from cart import load_user
from catalog import resolve_order
from database import ORDERS, USERS, create_document
from errors import Conflict, Unauthorized
from schemas import LoginRequest, RegisterRequest, User
from security import PasswordHasher, TokenService

logger = structlog.get_logger(__name__)

BAD_CREDENTIALS = "Invalid email or password"


def _summary(user: Dict[str, Any]) -> Dict[str, str]:
    return {"username": user["username"], "email": user["email"]}


def register(
    db: Database,
    passwords: PasswordHasher,
    tokens: TokenService,
    req: RegisterRequest,
) -> Dict[str, Any]:
    if db[USERS].find_one({"email": req.email}, {"_id": 1}):
        raise Conflict("User with this email already exists")
    if db[USERS].find_one({"username": req.username}, {"_id": 1}):
        raise Conflict("Username already taken")

    user = User(username=req.username, email=req.email, password_hash=passwords.hash(req.password))
    try:
        user_id = create_document(db, USERS, user)
    except DuplicateKeyError:
        # lost a race against a concurrent registration
        raise Conflict("User with this email or username already exists")

    logger.info("user.registered", user_id=str(user_id), username=user.username)
    return {
        "token": tokens.issue(str(user_id), user.email),
        "user": {"username": user.username, "email": user.email},
    }


def login(db: Database, passwords: PasswordHasher, tokens: TokenService, req: LoginRequest) -> Dict[str, Any]:
    user = db[USERS].find_one({"email": req.email})
    if not user:
        passwords.dummy_verify()
    if not user or not passwords.verify(req.password, user.get("passwordHash")):
        logger.info("user.login_failed")
        raise Unauthorized(BAD_CREDENTIALS)
    return {"token": tokens.issue(str(user["_id"]), user["email"]), "user": _summary(user)}


def profile(db: Database, user_id: str) -> Dict[str, Any]:
    user = load_user(db, user_id)
    history = user.get("orderHistory", [])
    orders = {o["_id"]: o for o in db[ORDERS].find({"_id": {"$in": history}})} if history else {}
    return {
        **_summary(user),
        "orderHistory": [resolve_order(db, orders[oid]) for oid in history if oid in orders],
    }
