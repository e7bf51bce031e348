"""Storefront checkout FastAPI application.

Web server that processes checkout commands synchronously via HTTP. Each
checkout request is wrapped in the checkout domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay, CHECKOUT_* the collaborators
# (see checkout.settings).
from checkout.domain import checkout  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkout.gateways import get_order_service, get_settlement_service
from checkout.settings import get_settings

checkout.init()

_CHECKOUT_PREFIX = "/checkouts"


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Checkout API",
    description="Checkout sessions, order placement and payment settlement",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the checkout domain context for checkout requests."""
    if request.url.path.startswith(_CHECKOUT_PREFIX):
        with checkout.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api import checkout_router, register_checkout_exception_handlers  # noqa: E402

app.include_router(checkout_router)
register_checkout_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    settings = get_settings()
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.environment,
            "domains": {"checkout": {"name": checkout.name}},
            "services": {
                "order_service": type(get_order_service()).__name__,
                "settlement_service": type(get_settlement_service()).__name__,
            },
        }
    )
