"""
Tenant Schema Validator Service

Audits a tenant namespace against the schema registry.
Reports missing and extra tables, per-table column, index and foreign key
drift, and a coarse structural health check. Never modifies the database:
structural mismatches are data in the report, only infrastructure failures
raise.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from conductor.core.tenant_context import resolve_namespace, validate_tenant_id
from conductor.core.tenant_schema_definition import (
    TENANT_SCHEMA_VERSION,
    count_foreign_keys,
    count_indexes,
    get_required_tables,
    get_table_definition,
)

logger = logging.getLogger(__name__)


@dataclass
class TableColumnDiff:
    """Structural drift of one table present in the namespace."""
    missing_columns: List[str] = field(default_factory=list)
    extra_columns: List[str] = field(default_factory=list)
    pending_renames: List[Tuple[str, str]] = field(default_factory=list)
    missing_indexes: List[str] = field(default_factory=list)
    missing_foreign_keys: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.missing_columns or self.extra_columns or self.pending_renames
            or self.missing_indexes or self.missing_foreign_keys
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "missing_columns": self.missing_columns,
            "extra_columns": self.extra_columns,
            "pending_renames": [
                {"from": old, "to": new} for old, new in self.pending_renames
            ],
            "missing_indexes": self.missing_indexes,
            "missing_foreign_keys": self.missing_foreign_keys,
        }


@dataclass
class ValidationReport:
    """Result of schema validation."""
    tenant_id: str
    namespace: str
    namespace_exists: bool
    missing_tables: List[str] = field(default_factory=list)
    extra_tables: List[str] = field(default_factory=list)
    completeness_percent: float = 0.0
    column_diffs: Dict[str, TableColumnDiff] = field(default_factory=dict)
    schema_version: int = TENANT_SCHEMA_VERSION

    @property
    def is_valid(self) -> bool:
        # Extra tables are tenant extensions and never fail validation.
        return self.namespace_exists and not self.missing_tables

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "tenant_id": self.tenant_id,
            "namespace": self.namespace,
            "schema_version": self.schema_version,
            "namespace_exists": self.namespace_exists,
            "is_valid": self.is_valid,
            "completeness_percent": self.completeness_percent,
            "missing_tables": self.missing_tables,
            "extra_tables": self.extra_tables,
            "column_diffs": {
                table: diff.to_dict() for table, diff in self.column_diffs.items()
            },
        }


@dataclass
class HealthReport:
    """Coarse structural health of a namespace."""
    tenant_id: str
    namespace: str
    table_count: int = 0
    index_count: int = 0
    constraint_count: int = 0
    foreign_key_count: int = 0
    issues: List[str] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return not self.issues

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "namespace": self.namespace,
            "table_count": self.table_count,
            "index_count": self.index_count,
            "constraint_count": self.constraint_count,
            "foreign_key_count": self.foreign_key_count,
            "is_healthy": self.is_healthy,
            "issues": self.issues,
        }


class TenantSchemaValidator:
    """Validates tenant namespaces. Reads the catalog on every call."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def validate(self, tenant_id: Any) -> ValidationReport:
        """
        Validate a tenant namespace against the schema registry.

        Args:
            tenant_id: Tenant UUID

        Returns:
            ValidationReport; ``is_valid`` is true iff no required table is missing

        Raises:
            InvalidTenantIdError: If tenant_id is not a UUID
        """
        tenant_id = validate_tenant_id(tenant_id)
        namespace = resolve_namespace(tenant_id)
        required = get_required_tables()

        report = ValidationReport(
            tenant_id=tenant_id,
            namespace=namespace,
            namespace_exists=await self.namespace_exists(namespace),
        )

        if not report.namespace_exists:
            report.missing_tables = list(required)
            logger.warning(f"Namespace {namespace} does not exist")
            return report

        existing_tables = set(await self.get_existing_tables(namespace))
        existing_columns = await self.get_existing_columns(namespace)
        existing_indexes = await self.get_existing_indexes(namespace)
        existing_foreign_keys = await self.get_existing_foreign_keys(namespace)

        report.missing_tables = [t for t in required if t not in existing_tables]
        report.extra_tables = sorted(existing_tables - set(required))
        found = len(required) - len(report.missing_tables)
        report.completeness_percent = round(found / len(required) * 100, 2)

        for table_name in required:
            if table_name not in existing_tables:
                continue
            diff = self._diff_table(
                table_name,
                existing_columns.get(table_name, []),
                existing_indexes.get(table_name, set()),
                existing_foreign_keys,
            )
            if not diff.is_empty:
                report.column_diffs[table_name] = diff

        logger.info(
            f"Validated {namespace}: {report.completeness_percent}% complete, "
            f"{len(report.missing_tables)} missing, {len(report.extra_tables)} extra"
        )
        return report

    async def validate_health(self, tenant_id: Any) -> HealthReport:
        """
        Compare object counts in a namespace with the minimums the registry implies.

        Issues are human-readable strings for operators, not structured errors.
        """
        tenant_id = validate_tenant_id(tenant_id)
        namespace = resolve_namespace(tenant_id)
        report = HealthReport(tenant_id=tenant_id, namespace=namespace)

        if not await self.namespace_exists(namespace):
            report.issues.append(f"Namespace for tenant {tenant_id} does not exist")
            return report

        report.table_count = len(await self.get_existing_tables(namespace))
        indexes = await self.get_existing_indexes(namespace)
        report.index_count = sum(len(names) for names in indexes.values())
        constraints = await self.get_constraint_counts(namespace)
        report.constraint_count = sum(constraints.values())
        report.foreign_key_count = constraints.get("FOREIGN KEY", 0)
        primary_keys = constraints.get("PRIMARY KEY", 0)

        min_tables = len(get_required_tables())
        min_indexes = count_indexes()
        min_foreign_keys = count_foreign_keys()

        if report.table_count < min_tables:
            report.issues.append(
                f"Only {report.table_count} tables found, expected at least {min_tables}"
            )
        if report.index_count < min_indexes:
            report.issues.append(
                f"Only {report.index_count} indexes found, expected at least {min_indexes}"
            )
        if report.foreign_key_count < min_foreign_keys:
            report.issues.append(
                f"Only {report.foreign_key_count} foreign keys found, "
                f"expected at least {min_foreign_keys}"
            )
        if primary_keys < report.table_count:
            report.issues.append(
                f"{report.table_count - primary_keys} tables have no primary key"
            )

        if report.issues:
            logger.warning(f"Health check for {namespace} found {len(report.issues)} issues")
        return report

    # -------------------------------------------------------------------------
    # Catalog reads
    # -------------------------------------------------------------------------

    async def namespace_exists(self, namespace: str) -> bool:
        """Check if schema exists."""
        result = await self.db.execute(text("""
            SELECT EXISTS (
                SELECT 1 FROM information_schema.schemata
                WHERE schema_name = :schema_name
            )
        """), {"schema_name": namespace})
        return bool(result.scalar())

    async def get_existing_tables(self, namespace: str) -> List[str]:
        """Get list of existing tables in schema."""
        result = await self.db.execute(text("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = :schema_name
            AND table_type = 'BASE TABLE'
        """), {"schema_name": namespace})
        return [row[0] for row in result.fetchall()]

    async def get_existing_columns(self, namespace: str) -> Dict[str, List[str]]:
        """Get existing column names per table, in ordinal order."""
        result = await self.db.execute(text("""
            SELECT table_name, column_name
            FROM information_schema.columns
            WHERE table_schema = :schema_name
            ORDER BY table_name, ordinal_position
        """), {"schema_name": namespace})

        columns: Dict[str, List[str]] = {}
        for table_name, column_name in result.fetchall():
            columns.setdefault(table_name, []).append(column_name)
        return columns

    async def get_existing_indexes(self, namespace: str) -> Dict[str, Set[str]]:
        """Get existing index names per table."""
        result = await self.db.execute(text("""
            SELECT tablename, indexname
            FROM pg_indexes
            WHERE schemaname = :schema_name
        """), {"schema_name": namespace})

        indexes: Dict[str, Set[str]] = {}
        for table_name, index_name in result.fetchall():
            indexes.setdefault(table_name, set()).add(index_name)
        return indexes

    async def get_existing_foreign_keys(self, namespace: str) -> Set[str]:
        """
        Names of the foreign key constraints in a schema.

        PostgreSQL has no ADD CONSTRAINT IF NOT EXISTS, so the provisioner
        checks this set before adding a foreign key.
        """
        result = await self.db.execute(text("""
            SELECT con.conname
            FROM pg_constraint con
            JOIN pg_namespace nsp ON nsp.oid = con.connamespace
            WHERE nsp.nspname = :schema_name
            AND con.contype = 'f'
        """), {"schema_name": namespace})
        return {row[0] for row in result.fetchall()}

    async def get_constraint_counts(self, namespace: str) -> Dict[str, int]:
        """Count constraints by type (PRIMARY KEY, FOREIGN KEY, UNIQUE, CHECK)."""
        result = await self.db.execute(text("""
            SELECT constraint_type, COUNT(*)
            FROM information_schema.table_constraints
            WHERE table_schema = :schema_name
            GROUP BY constraint_type
        """), {"schema_name": namespace})
        return {row[0]: int(row[1]) for row in result.fetchall()}

    def _diff_table(
        self,
        table_name: str,
        existing_columns: List[str],
        existing_indexes: Set[str],
        existing_foreign_keys: Set[str],
    ) -> TableColumnDiff:
        table_def = get_table_definition(table_name)
        present = set(existing_columns)
        expected = set(table_def.column_names)

        diff = TableColumnDiff(
            missing_columns=[c for c in table_def.column_names if c not in present],
            extra_columns=[c for c in existing_columns if c not in expected],
            missing_indexes=[i.name for i in table_def.indexes if i.name not in existing_indexes],
            missing_foreign_keys=[
                col.foreign_key_name(table_name) for col in table_def.foreign_keys
                if col.foreign_key_name(table_name) not in existing_foreign_keys
            ],
        )
        for rename in table_def.renames:
            if rename.old_name in present and rename.new_name not in present:
                diff.pending_renames.append((rename.old_name, rename.new_name))
        return diff


async def validate_tenant_schema(db: AsyncSession, tenant_id: Any) -> ValidationReport:
    """Convenience function to validate a tenant namespace."""
    return await TenantSchemaValidator(db).validate(tenant_id)
