"""
Tenant middleware for multi-tenant request handling
"""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from conductor.core.tenant_context import (
    InvalidTenantIdError,
    MissingTenantContextError,
    is_public_route,
    require_tenant_context,
    resolve_namespace,
)

logger = logging.getLogger(__name__)


async def tenant_middleware(request: Request, call_next):
    """
    Middleware to inject tenant context into request

    This middleware:
    1. Identifies the tenant from the request
    2. Injects tenant_id and namespace into request.state
    3. Rejects non-public requests that carry no tenant

    Public routes (health check, docs, signup) are listed in PUBLIC_ROUTES
    and matched exactly. They ignore a malformed tenant header.
    """
    try:
        tenant_id = require_tenant_context(request)
    except MissingTenantContextError as e:
        logger.warning(str(e))
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InvalidTenantIdError:
        if is_public_route(request.url.path):
            # Public routes never use the tenant, so a stray header is ignored.
            logger.debug(f"Ignoring malformed tenant id on {request.url.path}")
            return await call_next(request)
        logger.warning(f"Malformed tenant id on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid tenant identifier"},
        )

    if tenant_id is not None:
        request.state.tenant_id = tenant_id
        request.state.namespace = resolve_namespace(tenant_id)
        logger.debug(f"Request for tenant {tenant_id}: {request.method} {request.url.path}")

    return await call_next(request)
