"""
Tenant Schema Service

Creates and evolves tenant namespaces from the schema registry.

Provisioning runs in five phases (namespace, tables, foreign keys, indexes,
seed rows) and commits after each one. Tables are created without foreign
keys so that one failed table never takes its dependents down with it.
Every statement is idempotent, so a provisioning run that failed part way
or timed out is completed by running it again.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from conductor.config import settings
from conductor.core.schema_identifiers import quote_namespace
from conductor.core.tenant_context import resolve_namespace, validate_tenant_id
from conductor.core.tenant_schema_definition import (
    TENANT_SCHEMA_VERSION,
    get_required_tables,
    get_table_definition,
)
from conductor.core.tenant_seed_data import TENANT_SEED_SETS
from conductor.services.tenant_schema_validator import TenantSchemaValidator

logger = logging.getLogger(__name__)


class NamespaceCreationFailedError(Exception):
    """Raised when the tenant namespace itself cannot be created."""

    def __init__(self, tenant_id: str, reason: str):
        super().__init__(f"Could not create namespace for tenant {tenant_id}: {reason}")
        self.tenant_id = tenant_id
        self.reason = reason


class ProvisionTimeoutError(Exception):
    """Raised when provisioning exceeds its time limit. Safe to retry."""

    def __init__(self, tenant_id: str, timeout: float):
        super().__init__(f"Provisioning tenant {tenant_id} exceeded {timeout}s")
        self.tenant_id = tenant_id
        self.timeout = timeout


@dataclass
class PartialProvisionWarning:
    """A single table, foreign key, index, seed or column step that failed."""
    step: str
    target: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"step": self.step, "target": self.target, "error": self.error}


@dataclass
class ProvisionResult:
    tenant_id: str
    namespace: str
    schema_version: int = TENANT_SCHEMA_VERSION
    tables_created: List[str] = field(default_factory=list)
    tables_existing: List[str] = field(default_factory=list)
    foreign_keys_created: List[str] = field(default_factory=list)
    indexes_created: List[str] = field(default_factory=list)
    seed_rows_inserted: int = 0
    warnings: List[PartialProvisionWarning] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "namespace": self.namespace,
            "schema_version": self.schema_version,
            "success": self.success,
            "tables_created": self.tables_created,
            "tables_existing": self.tables_existing,
            "foreign_keys_created": self.foreign_keys_created,
            "indexes_created": self.indexes_created,
            "seed_rows_inserted": self.seed_rows_inserted,
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class ColumnsAddedResult:
    tenant_id: str
    namespace: str
    columns_added: List[str] = field(default_factory=list)
    columns_renamed: List[str] = field(default_factory=list)
    foreign_keys_created: List[str] = field(default_factory=list)
    tables_skipped: List[str] = field(default_factory=list)
    warnings: List[PartialProvisionWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "namespace": self.namespace,
            "columns_added": self.columns_added,
            "columns_renamed": self.columns_renamed,
            "foreign_keys_created": self.foreign_keys_created,
            "tables_skipped": self.tables_skipped,
            "warnings": [w.to_dict() for w in self.warnings],
        }


class TenantSchemaService:
    """
    Provisions tenant namespaces.

    Failures of individual statements are isolated in savepoints and reported
    as warnings; only a failure to create the namespace itself (or a timeout)
    aborts the run.
    """

    def __init__(self, db: AsyncSession, use_advisory_lock: Optional[bool] = None):
        self.db = db
        self.validator = TenantSchemaValidator(db)
        if use_advisory_lock is None:
            use_advisory_lock = settings.PROVISION_ADVISORY_LOCK
        self.use_advisory_lock = use_advisory_lock

    async def provision(self, tenant_id: Any, timeout: Optional[float] = None) -> ProvisionResult:
        """
        Create the tenant namespace and every object the registry declares for it.

        Args:
            tenant_id: Tenant UUID
            timeout: Seconds before giving up (default PROVISION_TIMEOUT_SECONDS)

        Returns:
            ProvisionResult with per-step warnings

        Raises:
            InvalidTenantIdError: If tenant_id is not a UUID
            NamespaceCreationFailedError: If CREATE SCHEMA fails
            ProvisionTimeoutError: If the run exceeds the timeout
        """
        tenant_id = validate_tenant_id(tenant_id)
        namespace = resolve_namespace(tenant_id)
        if timeout is None:
            timeout = settings.PROVISION_TIMEOUT_SECONDS

        try:
            return await asyncio.wait_for(self._provision(tenant_id, namespace), timeout=timeout)
        except asyncio.TimeoutError:
            await self.db.rollback()
            logger.error(f"Provisioning {namespace} timed out after {timeout}s")
            raise ProvisionTimeoutError(tenant_id, timeout) from None

    async def _provision(self, tenant_id: str, namespace: str) -> ProvisionResult:
        result = ProvisionResult(tenant_id=tenant_id, namespace=namespace)
        logger.info(f"Provisioning namespace {namespace} (schema v{TENANT_SCHEMA_VERSION})")

        # Phase 1: namespace
        try:
            await self._lock(namespace)
            await self.db.execute(text(f"CREATE SCHEMA IF NOT EXISTS {quote_namespace(namespace)}"))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create namespace {namespace}: {e}")
            raise NamespaceCreationFailedError(tenant_id, _error_text(e)) from e

        # Phase 2: tables, in registry order
        await self._lock(namespace)
        existing_tables = set(await self.validator.get_existing_tables(namespace))
        for table_name in get_required_tables():
            table_def = get_table_definition(table_name)
            outcome = await self._run_step(
                result.warnings, "table", table_name, table_def.to_create_sql(namespace)
            )
            if outcome is None:
                continue
            if table_name in existing_tables:
                result.tables_existing.append(table_name)
            else:
                result.tables_created.append(table_name)
        await self.db.commit()
        logger.info(
            f"{namespace}: {len(result.tables_created)} tables created, "
            f"{len(result.tables_existing)} already present"
        )

        # Phase 3: foreign keys, once every table that can exist does
        await self._lock(namespace)
        existing_foreign_keys = await self.validator.get_existing_foreign_keys(namespace)
        for table_name in get_required_tables():
            table_def = get_table_definition(table_name)
            for col in table_def.foreign_keys:
                name = col.foreign_key_name(table_name)
                if name in existing_foreign_keys:
                    continue
                outcome = await self._run_step(
                    result.warnings, "foreign_key", name, col.to_foreign_key_sql(namespace, table_name)
                )
                if outcome is not None:
                    result.foreign_keys_created.append(name)
        await self.db.commit()

        # Phase 4: indexes
        await self._lock(namespace)
        existing_indexes: Set[str] = set()
        for names in (await self.validator.get_existing_indexes(namespace)).values():
            existing_indexes.update(names)
        for table_name in get_required_tables():
            table_def = get_table_definition(table_name)
            for index in table_def.indexes:
                outcome = await self._run_step(
                    result.warnings, "index", index.name, index.to_sql(namespace, table_name)
                )
                if outcome is not None and index.name not in existing_indexes:
                    result.indexes_created.append(index.name)
        await self.db.commit()

        # Phase 5: seed rows
        await self._lock(namespace)
        for seed in TENANT_SEED_SETS:
            for row in seed.rows:
                sql, params = seed.to_insert(namespace, row)
                outcome = await self._run_step(result.warnings, "seed", seed.table, sql, params)
                if outcome is not None and outcome.rowcount > 0:
                    result.seed_rows_inserted += outcome.rowcount
        await self.db.commit()

        if result.warnings:
            logger.warning(
                f"Provisioned {namespace} with {len(result.warnings)} warnings: "
                f"{', '.join(w.target for w in result.warnings)}"
            )
        else:
            logger.info(f"Provisioned {namespace}: {result.seed_rows_inserted} seed rows inserted")
        return result

    async def add_missing_columns(self, tenant_id: Any) -> ColumnsAddedResult:
        """
        Bring existing tables up to the registry's column set.

        Declared renames are applied first, and only when the old column exists
        and the new one does not. Remaining template columns are then added
        with ADD COLUMN IF NOT EXISTS, followed by the foreign key of any added
        reference column. Tables absent from the namespace are skipped;
        provisioning creates them.
        """
        tenant_id = validate_tenant_id(tenant_id)
        namespace = resolve_namespace(tenant_id)
        result = ColumnsAddedResult(tenant_id=tenant_id, namespace=namespace)

        await self._lock(namespace)
        existing_columns = await self.validator.get_existing_columns(namespace)

        for table_name in get_required_tables():
            if table_name not in existing_columns:
                result.tables_skipped.append(table_name)
                continue

            table_def = get_table_definition(table_name)
            present = set(existing_columns[table_name])

            for rename in table_def.renames:
                if rename.old_name not in present or rename.new_name in present:
                    continue
                outcome = await self._run_step(
                    result.warnings, "rename", f"{table_name}.{rename.old_name}",
                    rename.to_sql(namespace, table_name),
                )
                if outcome is not None:
                    present.discard(rename.old_name)
                    present.add(rename.new_name)
                    result.columns_renamed.append(
                        f"{table_name}.{rename.old_name} -> {rename.new_name}"
                    )

            for col in table_def.columns:
                if col.name in present:
                    continue
                outcome = await self._run_step(
                    result.warnings, "column", f"{table_name}.{col.name}",
                    col.to_add_sql(namespace, table_name),
                )
                if outcome is None:
                    continue
                result.columns_added.append(f"{table_name}.{col.name}")
                if col.references:
                    name = col.foreign_key_name(table_name)
                    outcome = await self._run_step(
                        result.warnings, "foreign_key", name,
                        col.to_foreign_key_sql(namespace, table_name),
                    )
                    if outcome is not None:
                        result.foreign_keys_created.append(name)

        await self.db.commit()
        logger.info(
            f"{namespace}: {len(result.columns_added)} columns added, "
            f"{len(result.columns_renamed)} renamed, {len(result.tables_skipped)} tables skipped"
        )
        return result

    async def _lock(self, namespace: str) -> None:
        """Serialize concurrent runs on one namespace until the current transaction ends."""
        if not self.use_advisory_lock:
            return
        await self.db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
            {"lock_key": namespace},
        )

    async def _run_step(
        self,
        warnings: List[PartialProvisionWarning],
        step: str,
        target: str,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
    ):
        """Execute one statement in a savepoint. Returns None on failure."""
        try:
            async with self.db.begin_nested():
                return await self.db.execute(text(sql), params or {})
        except SQLAlchemyError as e:
            logger.warning(f"{step} step failed for {target}: {e}")
            warnings.append(PartialProvisionWarning(step=step, target=target, error=_error_text(e)))
            return None


def _error_text(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc).strip()


async def provision_tenant_schema(
    db: AsyncSession, tenant_id: Any, timeout: Optional[float] = None
) -> ProvisionResult:
    """Convenience function to provision a tenant namespace."""
    return await TenantSchemaService(db).provision(tenant_id, timeout=timeout)


async def add_missing_tenant_columns(db: AsyncSession, tenant_id: Any) -> ColumnsAddedResult:
    """Convenience function to evolve an existing tenant namespace."""
    return await TenantSchemaService(db).add_missing_columns(tenant_id)
