"""Parcel brokerage FastAPI application.

Processes commands synchronously via HTTP. Every request that reaches a
domain route is wrapped in the logistics domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from logistics.domain import logistics  # noqa: E402

logistics.init()

_DOMAIN_PREFIXES = (
    "/pickups",
    "/shipments",
    "/track",
    "/finance",
    "/accounts",
    "/organizations",
)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Parcel Broker API",
    description="Shipment lifecycle, pickup requests and ledger-metered billing",
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
    """Push the logistics domain context for each domain request."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with logistics.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from logistics.api import (  # noqa: E402
    account_router,
    finance_router,
    organization_router,
    pickup_router,
    shipment_router,
    tracking_router,
)
from logistics.api.errors import register_error_handlers  # noqa: E402

app.include_router(pickup_router)
app.include_router(shipment_router)
app.include_router(tracking_router)
app.include_router(finance_router)
app.include_router(account_router)
app.include_router(organization_router)

register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"logistics": {"name": logistics.name}},
        }
    )
