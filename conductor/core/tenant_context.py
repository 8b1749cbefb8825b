"""
Tenant Context for Multi-Tenant Requests

Resolves the tenant of the current request and the namespace (PostgreSQL
schema) that holds its data. All services receive a tenant id and derive the
namespace through ``resolve_namespace``; nothing else computes schema names.

Key Principles:
1. NEVER query tenant tables without a tenant context
2. Tenant tables are always addressed as "namespace"."table"
3. The PUBLIC schema only holds the tenants control table

Usage Examples:

    # In an endpoint:
    @router.get("/tickets")
    async def list_tickets(tenant_id: str = Depends(get_tenant_id)):
        namespace = resolve_namespace(tenant_id)

    # In a script:
    namespace = resolve_namespace(args.tenant_id)
"""

import logging
import re
import uuid
from typing import Any, Optional

from fastapi import Request

from conductor.config import settings
from conductor.core.schema_identifiers import NAMESPACE_PREFIX

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

# Exact paths reachable without a tenant. Matching is by equality only.
PUBLIC_ROUTES = frozenset({
    "/",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/v1/auth/login",
    "/api/v1/tenants",
})


class InvalidTenantIdError(ValueError):
    """Raised when a tenant identifier is not a well-formed UUID."""

    def __init__(self, value: Any):
        super().__init__(f"Invalid tenant identifier: {value!r}")
        self.value = value


class MissingTenantContextError(Exception):
    """Raised when code requires tenant context but none is provided."""
    pass


class TenantNotFoundError(Exception):
    """Raised when tenant cannot be found."""
    pass


class TenantInactiveError(Exception):
    """Raised when tenant is not active."""
    pass


def validate_tenant_id(tenant_id: Any) -> str:
    """
    Validate a tenant identifier and return its canonical form.

    Accepts a ``uuid.UUID`` or the 36-character hyphenated string form in
    any case. Returns the lowercase hyphenated string.

    Raises:
        InvalidTenantIdError: If the value is not a UUID
    """
    if isinstance(tenant_id, uuid.UUID):
        return str(tenant_id)
    if not isinstance(tenant_id, str) or not _UUID_RE.fullmatch(tenant_id):
        raise InvalidTenantIdError(tenant_id)
    return str(uuid.UUID(tenant_id))


def resolve_namespace(tenant_id: Any) -> str:
    """
    Derive the namespace (schema name) that holds a tenant's tables.

    The canonical lowercase UUID has every non-alphanumeric character
    replaced by an underscore and gets the fixed ``tenant_`` prefix:

        11111111-1111-1111-1111-111111111111
        -> tenant_11111111_1111_1111_1111_111111111111
    """
    canonical = validate_tenant_id(tenant_id)
    return NAMESPACE_PREFIX + _NON_ALNUM_RE.sub("_", canonical)


def is_public_route(path: str) -> bool:
    return path in PUBLIC_ROUTES


def get_tenant_id_from_request(request: Request) -> Optional[str]:
    """
    Extract the raw tenant identifier from a request, if any.

    Priority:
    1. request.state.tenant_id - set by the tenant middleware
    2. Tenant header (X-Tenant-ID) - for API calls
    3. request.state.user["tenant_id"] - claims of an authenticated user
    """
    tenant_id = getattr(request.state, "tenant_id", None)
    if tenant_id:
        return tenant_id

    tenant_id = request.headers.get(settings.TENANT_HEADER)
    if tenant_id:
        return tenant_id.strip()

    user = getattr(request.state, "user", None)
    if isinstance(user, dict) and user.get("tenant_id"):
        return str(user["tenant_id"])

    return None


def require_tenant_context(request: Request) -> Optional[str]:
    """
    Return the validated tenant id of the request.

    Public routes return None when no tenant is present.

    Raises:
        MissingTenantContextError: If no tenant context in request
        InvalidTenantIdError: If the tenant id is malformed
    """
    tenant_id = get_tenant_id_from_request(request)
    if tenant_id is None:
        if is_public_route(request.url.path):
            return None
        raise MissingTenantContextError(
            f"No tenant context for {request.method} {request.url.path}"
        )
    return validate_tenant_id(tenant_id)
