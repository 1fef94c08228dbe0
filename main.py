from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

import accounts
import cart as cart_service
import catalog
import checkout as checkout_service
import orders as order_service
from config import Settings, load_settings
from context import AppContext, get_context, require_auth
from database import connect, ensure_indexes
from errors import StorefrontError
from logging_config import configure_logging
from middleware import RateLimitMiddleware, SecurityHeadersMiddleware, policies_from_settings
from schemas import (
    AddToCartRequest,
    CheckoutRequest,
    LoginRequest,
    OrderStatusRequest,
    ProductFilters,
    RegisterRequest,
)
from security import TokenClaim
from seed import seed_products_if_empty

logger = structlog.get_logger(__name__)


# Users, cart and checkout
users = APIRouter(prefix="/api/users", tags=["users"])


@users.post("/register", status_code=201)
def register(req: RegisterRequest, ctx: AppContext = Depends(get_context)):
    return {"success": True, **accounts.register(ctx.db, ctx.passwords, ctx.tokens, req)}


@users.post("/login")
def login(req: LoginRequest, ctx: AppContext = Depends(get_context)):
    return {"success": True, **accounts.login(ctx.db, ctx.passwords, ctx.tokens, req)}


@users.get("/cart")
def get_cart(claim: TokenClaim = Depends(require_auth), ctx: AppContext = Depends(get_context)):
    return {"success": True, "cart": cart_service.get_cart(ctx.db, claim.user_id)}


@users.post("/cart")
def add_to_cart(
    req: AddToCartRequest,
    claim: TokenClaim = Depends(require_auth),
    ctx: AppContext = Depends(get_context),
):
    lines = cart_service.upsert_item(ctx.db, claim.user_id, req.product_id, req.quantity)
    return {"success": True, "cart": lines}


@users.delete("/cart/item/{product_id}")
def remove_from_cart(
    product_id: str,
    claim: TokenClaim = Depends(require_auth),
    ctx: AppContext = Depends(get_context),
):
    return {"success": True, "cart": cart_service.remove_item(ctx.db, claim.user_id, product_id)}


@users.post("/cart/checkout", status_code=201)
def checkout(
    req: CheckoutRequest,
    claim: TokenClaim = Depends(require_auth),
    ctx: AppContext = Depends(get_context),
):
    order = checkout_service.checkout(
        ctx.db, claim.user_id, req.shipping_address, req.currency, req.total_amount
    )
    return {"success": True, "order": order}


@users.get("/profile")
def get_profile(claim: TokenClaim = Depends(require_auth), ctx: AppContext = Depends(get_context)):
    return {"success": True, **accounts.profile(ctx.db, claim.user_id)}


# Catalog
products = APIRouter(prefix="/api/products", tags=["products"])


@products.get("")
def list_products(
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    size: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
):
    filters = ProductFilters(category=category, min_price=min_price, max_price=max_price, size=size)
    result = catalog.list_products(ctx.db, filters, page, limit)
    return {"success": True, "products": result.items, "pagination": result.pagination()}


@products.get("/search")
def search_products(q: Optional[str] = None, ctx: AppContext = Depends(get_context)):
    found = catalog.search_products(ctx.db, q)
    return {"success": True, "products": found, "count": len(found)}


@products.get("/{product_id}")
def get_product(product_id: str, ctx: AppContext = Depends(get_context)):
    return {"success": True, "product": catalog.get_product(ctx.db, product_id)}


# Orders
orders = APIRouter(prefix="/api/orders", tags=["orders"])


@orders.get("/history")
def order_history(claim: TokenClaim = Depends(require_auth), ctx: AppContext = Depends(get_context)):
    history = order_service.order_history(ctx.db, claim.user_id)
    return {"success": True, "orders": history, "count": len(history)}


@orders.patch("/{order_id}/status")
def update_order_status(
    order_id: str,
    req: OrderStatusRequest,
    claim: TokenClaim = Depends(require_auth),
    ctx: AppContext = Depends(get_context),
):
    order = order_service.update_status(ctx.db, order_id, claim.user_id, req.status)
    return {"success": True, "order": order}


# Service routes
service = APIRouter()


@service.get("/")
def root():
    return {"message": "Storefront API running"}


@service.get("/api/health")
def health(ctx: AppContext = Depends(get_context)):
    try:
        collections = ctx.db.list_collection_names()
    except PyMongoError as exc:
        logger.warning("health.database_unavailable", error=str(exc))
        return JSONResponse(status_code=503, content={"success": False, "message": "Database unavailable"})
    return {"success": True, "database": ctx.db.name, "collections": sorted(collections)[:10]}


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return _error(400, "Validation failed", errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("request.unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
        return _error(500, "Internal server error")


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    """Build the API. Settings and database default to the environment."""
    if settings is None:
        settings = load_settings()
        configure_logging(settings.environment, settings.log_level)
    if db is None:
        db = connect(settings.mongodb_uri, settings.mongodb_db)
    ensure_indexes(db)

    app = FastAPI(title="Storefront API")
    app.state.context = AppContext.build(settings, db)

    if settings.rate_limit_enabled:
        app.add_middleware(RateLimitMiddleware, policies=policies_from_settings(settings))
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        # development accepts any origin
        allow_origin_regex=".*" if settings.is_development else None,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    for router in (service, users, products, orders):
        app.include_router(router)

    @app.on_event("startup")
    def seed_demo_products():
        if settings.seed_demo_products:
            seed_products_if_empty(db)
        logger.info("app.started", environment=settings.environment, port=settings.port)

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.environment, settings.log_level)
    app = create_app(settings)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
