from typing import Annotated
import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from conductor.database import get_db
from conductor.core.tenant_context import require_tenant_context, MissingTenantContextError
from conductor.models.tenant import Tenant
from conductor.services.tenant_onboarding_service import TenantOnboardingService


logger = logging.getLogger(__name__)


def get_tenant_id(request: Request) -> str:
    """
    Dependency returning the validated tenant id of the request.

    Raises MissingTenantContextError on public routes, which never carry a
    tenant scope for tenant-scoped handlers.
    """
    tenant_id = require_tenant_context(request)
    if tenant_id is None:
        raise MissingTenantContextError(f"No tenant context for {request.url.path}")
    return tenant_id


async def get_active_tenant(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Tenant:
    """Dependency resolving the tenant control row; rejects unknown and suspended tenants."""
    return await TenantOnboardingService(db).require_active_tenant(tenant_id)


DB = Annotated[AsyncSession, Depends(get_db)]
TenantId = Annotated[str, Depends(get_tenant_id)]
ActiveTenant = Annotated[Tenant, Depends(get_active_tenant)]
