from fastapi import APIRouter

from conductor.api.v1.endpoints import (
    # Signup and tenant status
    tenants,
    # Namespace administration
    tenant_schema,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(tenants.router, tags=["Tenants"])
api_router.include_router(tenant_schema.router, prefix="/tenant", tags=["Tenant Schema"])
