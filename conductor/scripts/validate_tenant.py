"""
Validate a tenant namespace against the schema registry.

Usage:
    python -m conductor.scripts.validate_tenant <tenant-id> [--format json|text] [--health]

Exit codes: 0 valid (and healthy with --health), 1 drift found, 2 bad tenant id.
"""
import argparse
import asyncio
import json
import logging
import sys

from conductor.config import settings
from conductor.core.tenant_context import InvalidTenantIdError, validate_tenant_id
from conductor.services.tenant_schema_validator import (
    HealthReport,
    TenantSchemaValidator,
    ValidationReport,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate a tenant namespace against the schema registry")
    parser.add_argument("tenant_id", help="Tenant UUID")
    parser.add_argument("--format", choices=("json", "text"), default="text", help="Output format")
    parser.add_argument("--health", action="store_true", help="Also run the structural health check")
    return parser


def print_text(report: ValidationReport, health: HealthReport = None) -> None:
    print("=" * 60)
    print(f"TENANT {report.tenant_id}")
    print(f"Namespace: {report.namespace} (schema v{report.schema_version})")
    print("=" * 60)

    if not report.namespace_exists:
        print("  Namespace does not exist")
    print(f"  Completeness: {report.completeness_percent}%")
    print(f"  Valid: {'yes' if report.is_valid else 'no'}")

    if report.missing_tables:
        print(f"\n  Missing tables ({len(report.missing_tables)}):")
        for table in report.missing_tables:
            print(f"    - {table}")

    if report.extra_tables:
        print(f"\n  Extra tables ({len(report.extra_tables)}):")
        for table in report.extra_tables:
            print(f"    + {table}")

    for table, diff in report.column_diffs.items():
        print(f"\n  {table}:")
        for col in diff.missing_columns:
            print(f"    missing column: {col}")
        for col in diff.extra_columns:
            print(f"    extra column: {col}")
        for old, new in diff.pending_renames:
            print(f"    pending rename: {old} -> {new}")
        for idx in diff.missing_indexes:
            print(f"    missing index: {idx}")
        for fk in diff.missing_foreign_keys:
            print(f"    missing foreign key: {fk}")

    if health is not None:
        print(f"\n  Health: {'OK' if health.is_healthy else 'ISSUES'}")
        print(
            f"    tables={health.table_count} indexes={health.index_count} "
            f"constraints={health.constraint_count} foreign_keys={health.foreign_key_count}"
        )
        for issue in health.issues:
            print(f"    ! {issue}")


async def run(args: argparse.Namespace, session_factory) -> int:
    async with session_factory() as db:
        validator = TenantSchemaValidator(db)
        report = await validator.validate(args.tenant_id)
        health = await validator.validate_health(args.tenant_id) if args.health else None

    if args.format == "json":
        output = {"validation": report.to_dict()}
        if health is not None:
            output["health"] = health.to_dict()
        print(json.dumps(output, indent=2))
    else:
        print_text(report, health)

    ok = report.is_valid and (health is None or health.is_healthy)
    return 0 if ok else 1


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

    return asyncio.run(run(args, session_factory))


if __name__ == "__main__":
    sys.exit(main())
