"""
Runtime configuration for the storefront API.

Settings come from the process environment (and a local .env file when
present). MONGODB_URI and JWT_SECRET are mandatory: the process refuses to
start without them.
"""
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

logger = structlog.get_logger(__name__)

DEV_ORIGINS = ["http://localhost:3000", "http://localhost:3001"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    mongodb_uri: str = Field(..., min_length=1, validation_alias="MONGODB_URI")
    mongodb_db: str = Field("storefront", validation_alias="MONGODB_DB")
    jwt_secret: str = Field(..., min_length=1, validation_alias="JWT_SECRET")
    port: int = Field(5002, validation_alias="PORT")
    frontend_url: Optional[str] = Field(None, validation_alias="FRONTEND_URL")
    environment: str = Field(
        "production", validation_alias=AliasChoices("NODE_ENV", "ENVIRONMENT")
    )
    log_level: Optional[str] = Field(None, validation_alias="LOG_LEVEL")

    token_ttl_seconds: int = Field(3600, gt=0, validation_alias="TOKEN_TTL_SECONDS")
    bcrypt_rounds: int = Field(10, ge=10, le=16, validation_alias="BCRYPT_ROUNDS")

    rate_limit_enabled: bool = Field(True, validation_alias="RATE_LIMIT_ENABLED")
    rate_limit_window_ms: int = Field(15 * 60 * 1000, gt=0, validation_alias="RATE_LIMIT_WINDOW_MS")
    rate_limit_max: int = Field(100, gt=0, validation_alias="RATE_LIMIT_MAX")
    auth_rate_limit_max: int = Field(5, gt=0, validation_alias="AUTH_RATE_LIMIT_MAX")
    rate_limit_scope: Literal["global", "auth-endpoints-only"] = Field(
        "global", validation_alias="RATE_LIMIT_SCOPE"
    )

    seed_demo_products: bool = Field(False, validation_alias="SEED_DEMO_PRODUCTS")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def cors_origins(self) -> List[str]:
        origins = list(DEV_ORIGINS)
        if self.frontend_url:
            origins.append(self.frontend_url)
        return origins


def load_settings(**overrides) -> Settings:
    """Build Settings or terminate the process when required options are missing."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        logger.error("config.invalid", fields=fields, error_count=exc.error_count())
        raise SystemExit(1) from exc
