"""API endpoints for the namespace of the tenant in context."""

import logging
from typing import List

from fastapi import APIRouter
from sqlalchemy import text

from conductor.api.deps import DB, ActiveTenant
from conductor.core.tenant_context import resolve_namespace
from conductor.core.tenant_schema_definition import qualified_table
from conductor.schemas.tenant import (
    ColumnsAddedResponse,
    HealthResponse,
    ProvisionResponse,
    TicketCategoryResponse,
    ValidationResponse,
)
from conductor.services.tenant_schema_service import TenantSchemaService
from conductor.services.tenant_schema_validator import TenantSchemaValidator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/schema/provision", response_model=ProvisionResponse)
async def provision_schema(tenant: ActiveTenant, db: DB):
    """Create or repair the tenant namespace. Safe to call repeatedly."""
    result = await TenantSchemaService(db).provision(tenant.id)
    return result.to_dict()


@router.get("/schema/validate", response_model=ValidationResponse)
async def validate_schema(tenant: ActiveTenant, db: DB):
    report = await TenantSchemaValidator(db).validate(tenant.id)
    return report.to_dict()


@router.get("/schema/health", response_model=HealthResponse)
async def schema_health(tenant: ActiveTenant, db: DB):
    report = await TenantSchemaValidator(db).validate_health(tenant.id)
    return report.to_dict()


@router.post("/schema/columns", response_model=ColumnsAddedResponse)
async def add_missing_columns(tenant: ActiveTenant, db: DB):
    """Apply pending column renames and add columns missing from existing tables."""
    result = await TenantSchemaService(db).add_missing_columns(tenant.id)
    return result.to_dict()


@router.get("/ticket-categories", response_model=List[TicketCategoryResponse])
async def list_ticket_categories(tenant: ActiveTenant, db: DB):
    """List active ticket categories of the tenant."""
    namespace = resolve_namespace(tenant.id)
    result = await db.execute(text(f"""
        SELECT id, name, description, color, icon, sort_order
        FROM {qualified_table(namespace, "ticket_categories")}
        WHERE active = TRUE
        ORDER BY sort_order, name
    """))
    return [dict(row) for row in result.mappings().all()]
