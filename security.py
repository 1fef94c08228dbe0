"""
Credential handling: bcrypt password hashes and signed bearer tokens.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict

from errors import ConfigurationError, Unauthorized

JWT_ALG = "HS256"
INVALID_TOKEN = "Invalid or expired token."


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, hashed: Optional[str]) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(plaintext, hashed)
        except ValueError:
            # not a bcrypt hash
            return False

    def dummy_verify(self) -> None:
        """Spend the same time as a real verify, for unknown accounts."""
        self._context.dummy_verify()


class TokenClaim(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str


class TokenService:
    """Issues and checks HS256 JWTs carrying the user id and email."""

    def __init__(self, secret: str, ttl_seconds: int = 3600):
        if not secret:
            raise ConfigurationError("JWT_SECRET is not configured")
        self._secret = secret
        self.ttl = timedelta(seconds=ttl_seconds)

    def issue(self, user_id: str, email: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALG)

    def verify(self, token: str) -> TokenClaim:
        if not token:
            raise Unauthorized(INVALID_TOKEN)
        try:
            payload = jwt.decode(token, self._secret, algorithms=[JWT_ALG])
        except JWTError:
            raise Unauthorized(INVALID_TOKEN)
        user_id = payload.get("sub")
        if not user_id:
            raise Unauthorized(INVALID_TOKEN)
        return TokenClaim(user_id=user_id, email=payload.get("email", ""))
