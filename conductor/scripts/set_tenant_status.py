"""
Suspend or reactivate a tenant.

Usage:
    python -m conductor.scripts.set_tenant_status <tenant-id> active|suspended

Suspended tenants cannot reach the tenant API, so reactivation is an
operator action.

Exit codes: 0 success, 2 bad tenant id or unknown tenant.
"""
import argparse
import asyncio
import logging
import sys

from conductor.config import settings
from conductor.core.tenant_context import (
    InvalidTenantIdError,
    TenantNotFoundError,
    validate_tenant_id,
)
from conductor.models.tenant import TENANT_STATUSES
from conductor.services.tenant_onboarding_service import TenantOnboardingService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Suspend or reactivate a tenant")
    parser.add_argument("tenant_id", help="Tenant UUID")
    parser.add_argument("status", choices=TENANT_STATUSES, help="New tenant status")
    return parser


async def run(args: argparse.Namespace, session_factory) -> int:
    async with session_factory() as db:
        tenant = await TenantOnboardingService(db).set_tenant_status(args.tenant_id, args.status)
    print(f"Tenant {tenant.id}: {tenant.status}")
    return 0


def main(argv=None, session_factory=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s [%(name)s] %(message)s")

    try:
        args.tenant_id = validate_tenant_id(args.tenant_id)
    except InvalidTenantIdError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if session_factory is None:
        from conductor.database import async_session_factory as session_factory

    try:
        return asyncio.run(run(args, session_factory))
    except TenantNotFoundError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
