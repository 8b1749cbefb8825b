"""API endpoints for tenant signup and lifecycle status."""

import logging

from fastapi import APIRouter, status

from conductor.api.deps import DB, ActiveTenant
from conductor.schemas.tenant import (
    TenantRegistrationRequest,
    TenantRegistrationResponse,
    TenantResponse,
    TenantStatusUpdateRequest,
)
from conductor.services.tenant_onboarding_service import TenantOnboardingService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/tenants",
    response_model=TenantRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_tenant(request: TenantRegistrationRequest, db: DB):
    """
    Register a new tenant and provision its namespace.

    Public endpoint. Provisioning warnings are returned in the response
    and do not block the signup.
    """
    service = TenantOnboardingService(db)
    tenant, provision_result = await service.register_tenant(
        name=request.name,
        tenant_id=request.tenant_id,
    )
    return TenantRegistrationResponse(
        tenant=TenantResponse.model_validate(tenant),
        provisioning=provision_result.to_dict(),
    )


@router.patch("/tenant/status", response_model=TenantResponse)
async def update_tenant_status(request: TenantStatusUpdateRequest, tenant: ActiveTenant, db: DB):
    """
    Change the status of the tenant in context.

    Only active tenants reach this endpoint, so a suspended tenant cannot
    reactivate itself; operators use the conductor-tenant-status command.
    """
    tenant = await TenantOnboardingService(db).set_tenant_status(tenant.id, request.status)
    return TenantResponse.model_validate(tenant)
