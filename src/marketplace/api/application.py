"""FastAPI application factory."""

from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.api.errors import install_error_handlers
from marketplace.api.routes import cart_router, flash_sale_router, order_router, product_router
from marketplace.domain import marketplace as marketplace_domain
from marketplace.services import Marketplace
from marketplace.utils.logging import add_context, clear_context


def create_app(marketplace: Marketplace | None = None, initialize: bool = True) -> FastAPI:
    """Build the API around ``marketplace`` (a fresh one from settings by default).

    With ``initialize`` the marketplace configures logging, initializes the
    domain and creates the schema when the app starts. Tests pass an
    already initialized marketplace and turn it off.
    """
    marketplace = marketplace or Marketplace(marketplace_domain)
    domain = marketplace.domain

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if initialize:
            marketplace.init()
        yield

    app = FastAPI(
        title="Marketplace API",
        description="Inventory-consistent carts, orders and flash sales",
        lifespan=lifespan,
    )
    app.state.marketplace = marketplace

    app.add_middleware(
        CORSMiddleware,
        allow_origins=marketplace.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the domain context and bind request identifiers to every log line."""
        clear_context()
        add_context(
            request_id=request.headers.get("X-Request-Id") or uuid4().hex,
            method=request.method,
            path=request.url.path,
            user_id=request.headers.get("X-User-Id"),
        )
        with domain.domain_context():
            response = await call_next(request)
        return response

    install_error_handlers(app)

    app.include_router(product_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(flash_sale_router)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "domain": domain.name,
                "environment": marketplace.settings.environment,
            }
        )

    return app
