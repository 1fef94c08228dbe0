"""The per-process application context and the request dependencies built on it."""
from typing import Optional

from fastapi import Depends, Header, Request
from pydantic import BaseModel, ConfigDict, SkipValidation
from pymongo.database import Database

from config import Settings
from errors import Unauthorized
from security import INVALID_TOKEN, PasswordHasher, TokenClaim, TokenService

BEARER_PREFIX = "Bearer "
NO_TOKEN = "Access denied. No token provided."


class AppContext(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: Settings
    db: SkipValidation[Database]
    passwords: PasswordHasher
    tokens: TokenService

    @classmethod
    def build(cls, settings: Settings, db: Database) -> "AppContext":
        return cls(
            settings=settings,
            db=db,
            passwords=PasswordHasher(rounds=settings.bcrypt_rounds),
            tokens=TokenService(settings.jwt_secret, ttl_seconds=settings.token_ttl_seconds),
        )


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def require_auth(
    authorization: Optional[str] = Header(None),
    ctx: AppContext = Depends(get_context),
) -> TokenClaim:
    """Resolve the bearer token to its claim or reject the request with 401."""
    if not authorization or not authorization.strip():
        raise Unauthorized(NO_TOKEN)
    if not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized(INVALID_TOKEN)
    token = authorization[len(BEARER_PREFIX):].strip()
    return ctx.tokens.verify(token)
