"""Logistics domain API package."""

from logistics.api.routes import (
    account_router,
    finance_router,
    organization_router,
    pickup_router,
    shipment_router,
    tracking_router,
)

__all__ = [
    "pickup_router",
    "shipment_router",
    "tracking_router",
    "finance_router",
    "account_router",
    "organization_router",
]
