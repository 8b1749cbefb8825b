"""Service for tenant signup and lifecycle status."""

import logging
import uuid
from typing import Any, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conductor.core.tenant_context import (
    TenantInactiveError,
    TenantNotFoundError,
    resolve_namespace,
    validate_tenant_id,
)
from conductor.models.tenant import Tenant, TENANT_STATUSES
from conductor.services.tenant_schema_service import ProvisionResult, TenantSchemaService

logger = logging.getLogger(__name__)


class TenantAlreadyExistsError(Exception):
    """Raised when signing up a tenant id that is already registered."""

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant {tenant_id} already exists")
        self.tenant_id = tenant_id


class TenantOnboardingService:
    """Service for handling tenant registration and status changes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register_tenant(
        self,
        name: str,
        tenant_id: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[Tenant, ProvisionResult]:
        """
        Register a tenant and provision its namespace.

        The control row is committed before provisioning starts, so a tenant
        whose provisioning failed or timed out can be repaired by provisioning
        again.

        Args:
            name: Organization name
            tenant_id: Optional UUID; generated when omitted
            timeout: Provisioning timeout in seconds

        Returns:
            (tenant, provision_result)

        Raises:
            ValueError: If name is empty
            TenantAlreadyExistsError: If the tenant id is taken
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Tenant name must not be empty")

        canonical = validate_tenant_id(tenant_id) if tenant_id is not None else str(uuid.uuid4())
        tenant_uuid = uuid.UUID(canonical)

        if await self.db.get(Tenant, tenant_uuid) is not None:
            raise TenantAlreadyExistsError(canonical)

        tenant = Tenant(
            id=tenant_uuid,
            name=name,
            status="active",
            database_schema=resolve_namespace(canonical),
        )
        self.db.add(tenant)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # A concurrent signup inserted the same id after the lookup above.
            await self.db.rollback()
            logger.warning(f"Tenant {canonical} was registered concurrently")
            raise TenantAlreadyExistsError(canonical) from e
        logger.info(f"Registered tenant {canonical} ({name})")

        provision_result = await TenantSchemaService(self.db).provision(canonical, timeout=timeout)
        return tenant, provision_result

    async def get_tenant(self, tenant_id: Any) -> Tenant:
        """
        Get a tenant by id.

        Raises:
            TenantNotFoundError: If no tenant has this id
        """
        canonical = validate_tenant_id(tenant_id)
        tenant = await self.db.get(Tenant, uuid.UUID(canonical))
        if tenant is None:
            raise TenantNotFoundError(f"Tenant {canonical} not found")
        return tenant

    async def require_active_tenant(self, tenant_id: Any) -> Tenant:
        tenant = await self.get_tenant(tenant_id)
        if not tenant.is_active:
            raise TenantInactiveError(f"Tenant {tenant.id} is {tenant.status}")
        return tenant

    async def set_tenant_status(self, tenant_id: Any, status: str) -> Tenant:
        """Suspend or reactivate a tenant. Tenants are never deleted."""
        if status not in TENANT_STATUSES:
            raise ValueError(f"Invalid tenant status: {status!r}")

        tenant = await self.get_tenant(tenant_id)
        if tenant.status != status:
            logger.info(f"Tenant {tenant.id}: {tenant.status} -> {status}")
            tenant.status = status
            await self.db.commit()
        return tenant
