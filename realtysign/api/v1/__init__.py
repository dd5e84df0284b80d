"""V1 API router aggregation."""

from fastapi import APIRouter

from realtysign.api.v1.auth import router as auth_router
from realtysign.api.v1.billing import router as billing_router
from realtysign.api.v1.dashboard import router as dashboard_router
from realtysign.api.v1.documents import router as documents_router
from realtysign.api.v1.esign import router as esign_router
from realtysign.api.v1.plans import router as plans_router
from realtysign.api.v1.recipients import router as recipients_router
from realtysign.api.v1.tenants import router as tenants_router
from realtysign.api.v1.usage import router as usage_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(tenants_router)
v1_router.include_router(auth_router)
v1_router.include_router(plans_router)
v1_router.include_router(usage_router)
v1_router.include_router(recipients_router)
v1_router.include_router(documents_router)
v1_router.include_router(dashboard_router)
v1_router.include_router(esign_router)
v1_router.include_router(billing_router)
