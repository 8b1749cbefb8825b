"""
Provision (or repair) a tenant namespace.

Usage:
    python -m conductor.scripts.provision_tenant <tenant-id> [--add-columns] [--timeout N]

Safe to run repeatedly: every statement is idempotent, so a run that timed
out is finished by running it again.

Exit codes: 0 success, 1 completed with warnings, 2 fatal error.
"""
import argparse
import asyncio
import logging
import sys

from conductor.config import settings
from conductor.core.tenant_context import InvalidTenantIdError, validate_tenant_id
from conductor.services.tenant_schema_service import (
    NamespaceCreationFailedError,
    ProvisionTimeoutError,
    TenantSchemaService,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Provision a tenant namespace from the schema registry")
    parser.add_argument("tenant_id", help="Tenant UUID")
    parser.add_argument(
        "--add-columns",
        action="store_true",
        help="Also apply column renames and add columns missing from existing tables",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help=f"Provisioning timeout in seconds (default {settings.PROVISION_TIMEOUT_SECONDS})",
    )
    return parser


async def run(args: argparse.Namespace, session_factory) -> int:
    async with session_factory() as db:
        service = TenantSchemaService(db)
        result = await service.provision(args.tenant_id, timeout=args.timeout)
        warnings = list(result.warnings)

        print(f"Namespace: {result.namespace}")
        print(f"  Tables created: {len(result.tables_created)}")
        print(f"  Tables already present: {len(result.tables_existing)}")
        print(f"  Foreign keys created: {len(result.foreign_keys_created)}")
        print(f"  Indexes created: {len(result.indexes_created)}")
        print(f"  Seed rows inserted: {result.seed_rows_inserted}")

        if args.add_columns:
            columns = await service.add_missing_columns(args.tenant_id)
            warnings.extend(columns.warnings)
            print(f"  Columns renamed: {len(columns.columns_renamed)}")
            for rename in columns.columns_renamed:
                print(f"    {rename}")
            print(f"  Columns added: {len(columns.columns_added)}")
            for col in columns.columns_added:
                print(f"    {col}")
            if columns.foreign_keys_created:
                print(f"  Foreign keys created: {len(columns.foreign_keys_created)}")

    if warnings:
        print(f"\nWARNINGS ({len(warnings)}):")
        for w in warnings:
            print(f"  [{w.step}] {w.target}: {w.error}")
        return 1

    print("\nDone.")
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
    except (NamespaceCreationFailedError, ProvisionTimeoutError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
