from conductor.models.tenant import Tenant, TENANT_STATUSES

__all__ = ["Tenant", "TENANT_STATUSES"]
