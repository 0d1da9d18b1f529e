"""Centralized v1 API router — all module routers are included here."""

from fastapi import APIRouter

from orderdesk.modules.amendment.router import router as amendment_router
from orderdesk.modules.fulfillment.router import router as fulfillment_router
from orderdesk.modules.pricing.router import router as pricing_router
from orderdesk.modules.versioning.router import router as versioning_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(amendment_router)
v1_router.include_router(versioning_router)
v1_router.include_router(fulfillment_router)
v1_router.include_router(pricing_router)
