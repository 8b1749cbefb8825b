# Services module
from conductor.services.tenant_schema_validator import TenantSchemaValidator
from conductor.services.tenant_schema_service import TenantSchemaService
from conductor.services.tenant_onboarding_service import TenantOnboardingService

__all__ = [
    "TenantSchemaValidator",
    "TenantSchemaService",
    "TenantOnboardingService",
]
