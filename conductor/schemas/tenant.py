"""Pydantic schemas for tenant signup, status and namespace administration."""

from datetime import datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class TenantRegistrationRequest(BaseModel):
    """Request to register a new tenant."""
    name: str = Field(..., min_length=2, max_length=255)
    tenant_id: Optional[UUID] = Field(None, description="Optional pre-assigned tenant id")

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Tenant name must not be blank')
        return v


class TenantResponse(BaseModel):
    """Tenant control row."""
    id: UUID
    name: str
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProvisionWarningResponse(BaseModel):
    step: str
    target: str
    error: str


class ProvisionResponse(BaseModel):
    """Summary of a provisioning run"""
    tenant_id: str
    namespace: str
    schema_version: int
    success: bool
    tables_created: List[str]
    tables_existing: List[str]
    foreign_keys_created: List[str]
    indexes_created: List[str]
    seed_rows_inserted: int
    warnings: List[ProvisionWarningResponse]


class TenantRegistrationResponse(BaseModel):
    """Response after successful signup."""
    tenant: TenantResponse
    provisioning: ProvisionResponse


class TenantStatusUpdateRequest(BaseModel):
    """Request to update tenant status"""
    status: Literal["active", "suspended"] = Field(..., description="New status: active or suspended")


class ColumnsAddedResponse(BaseModel):
    tenant_id: str
    namespace: str
    columns_added: List[str]
    columns_renamed: List[str]
    foreign_keys_created: List[str]
    tables_skipped: List[str]
    warnings: List[ProvisionWarningResponse]


class PendingRename(BaseModel):
    from_: str = Field(..., alias="from")
    to: str

    model_config = {"populate_by_name": True}


class TableDiffResponse(BaseModel):
    missing_columns: List[str]
    extra_columns: List[str]
    pending_renames: List[PendingRename]
    missing_indexes: List[str]
    missing_foreign_keys: List[str]


class ValidationResponse(BaseModel):
    """Result of validating a namespace against the schema registry"""
    tenant_id: str
    namespace: str
    schema_version: int
    namespace_exists: bool
    is_valid: bool
    completeness_percent: float
    missing_tables: List[str]
    extra_tables: List[str]
    column_diffs: Dict[str, TableDiffResponse]


class HealthResponse(BaseModel):
    tenant_id: str
    namespace: str
    table_count: int
    index_count: int
    constraint_count: int
    foreign_key_count: int
    is_healthy: bool
    issues: List[str]


class TicketCategoryResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    sort_order: int
