"""Tests for namespace validation and health checks."""

import pytest

from conductor.core.tenant_schema_definition import (
    TENANT_SCHEMA_VERSION,
    count_foreign_keys,
    get_required_tables,
)
from conductor.services.tenant_schema_service import TenantSchemaService
from conductor.services.tenant_schema_validator import TenantSchemaValidator, validate_tenant_schema

# Tables no other registry table references, so dropping them leaves foreign keys intact.
LEAF_TABLES = ["audit_logs", "activity_logs", "chat_messages", "knowledge_base_articles"]


@pytest.fixture
async def provisioned(db_session, tenant_id):
    await TenantSchemaService(db_session).provision(tenant_id)
    return db_session


@pytest.mark.asyncio
async def test_missing_namespace_is_reported_not_raised(db_session, tenant_id, namespace):
    report = await TenantSchemaValidator(db_session).validate(tenant_id)

    assert report.namespace == namespace
    assert not report.namespace_exists
    assert not report.is_valid
    assert report.missing_tables == list(get_required_tables())
    assert report.completeness_percent == 0.0


@pytest.mark.asyncio
async def test_dropped_price_lists(provisioned, fake_db, tenant_id, namespace):
    fake_db.drop_table(namespace, "price_lists")

    report = await TenantSchemaValidator(provisioned).validate(tenant_id)

    assert report.missing_tables == ["price_lists"]
    assert report.is_valid is False
    n = len(get_required_tables())
    assert report.completeness_percent == round((n - 1) / n * 100, 2)
    # DROP TABLE ... CASCADE took the referencing foreign key with it.
    assert report.column_diffs["price_list_items"].missing_foreign_keys == [
        "fk_price_list_items_price_list_id"
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("k", [1, 2, 3, 4])
async def test_completeness_with_k_missing(provisioned, fake_db, tenant_id, namespace, k):
    for table in LEAF_TABLES[:k]:
        fake_db.drop_table(namespace, table)

    report = await TenantSchemaValidator(provisioned).validate(tenant_id)

    n = len(get_required_tables())
    assert len(report.missing_tables) == k
    assert report.completeness_percent == round((n - k) / n * 100, 2)


@pytest.mark.asyncio
async def test_extra_tables_do_not_fail_validation(provisioned, fake_db, tenant_id, namespace):
    fake_db.create_extra_table(namespace, "custom_reports")

    report = await TenantSchemaValidator(provisioned).validate(tenant_id)

    assert report.is_valid
    assert report.extra_tables == ["custom_reports"]
    assert report.completeness_percent == 100.0


@pytest.mark.asyncio
async def test_column_drift(provisioned, fake_db, tenant_id, namespace):
    fake_db.drop_column(namespace, "tickets", "urgency")
    fake_db.add_plain_column(namespace, "tickets", "legacy_code")

    report = await TenantSchemaValidator(provisioned).validate(tenant_id)

    assert report.is_valid
    diff = report.column_diffs["tickets"]
    assert diff.missing_columns == ["urgency"]
    assert diff.extra_columns == ["legacy_code"]
    assert list(report.column_diffs) == ["tickets"]


@pytest.mark.asyncio
async def test_pending_rename_is_reported(provisioned, fake_db, tenant_id, namespace):
    fake_db.rename_column(namespace, "price_lists", "valid_from", "effective_date")

    report = await TenantSchemaValidator(provisioned).validate(tenant_id)

    diff = report.column_diffs["price_lists"]
    assert diff.pending_renames == [("effective_date", "valid_from")]
    assert diff.missing_columns == ["valid_from"]
    assert diff.extra_columns == ["effective_date"]
    assert diff.to_dict()["pending_renames"] == [{"from": "effective_date", "to": "valid_from"}]


@pytest.mark.asyncio
async def test_missing_foreign_key_is_reported(provisioned, fake_db, tenant_id, namespace):
    fake_db.drop_foreign_key(namespace, "fk_ticket_actions_subcategory_id")

    report = await TenantSchemaValidator(provisioned).validate(tenant_id)

    assert report.is_valid
    assert list(report.column_diffs) == ["ticket_actions"]
    diff = report.column_diffs["ticket_actions"]
    assert diff.missing_foreign_keys == ["fk_ticket_actions_subcategory_id"]
    assert diff.to_dict()["missing_foreign_keys"] == ["fk_ticket_actions_subcategory_id"]


@pytest.mark.asyncio
async def test_validation_never_writes(provisioned, fake_db, tenant_id):
    before = len(fake_db.statements)
    await validate_tenant_schema(provisioned, tenant_id)
    for sql in fake_db.statements[before:]:
        assert sql.lstrip().startswith("SELECT")


@pytest.mark.asyncio
async def test_each_call_reads_the_catalog(provisioned, fake_db, tenant_id, namespace):
    validator = TenantSchemaValidator(provisioned)
    assert (await validator.validate(tenant_id)).is_valid

    fake_db.drop_table(namespace, "audit_logs")
    assert (await validator.validate(tenant_id)).missing_tables == ["audit_logs"]


@pytest.mark.asyncio
async def test_report_to_dict(provisioned, tenant_id, namespace):
    data = (await TenantSchemaValidator(provisioned).validate(tenant_id)).to_dict()

    assert data["tenant_id"] == tenant_id
    assert data["namespace"] == namespace
    assert data["schema_version"] == TENANT_SCHEMA_VERSION
    assert data["is_valid"] is True
    assert data["column_diffs"] == {}


@pytest.mark.asyncio
async def test_health_of_provisioned_namespace(provisioned, tenant_id):
    health = await TenantSchemaValidator(provisioned).validate_health(tenant_id)

    assert health.is_healthy, health.issues
    assert health.table_count == len(get_required_tables())
    assert health.foreign_key_count == count_foreign_keys()
    assert health.constraint_count >= health.table_count


@pytest.mark.asyncio
async def test_health_reports_missing_objects(provisioned, fake_db, tenant_id, namespace):
    fake_db.drop_table(namespace, "price_lists")

    health = await TenantSchemaValidator(provisioned).validate_health(tenant_id)

    assert not health.is_healthy
    assert any("tables found" in issue for issue in health.issues)
    assert any("foreign keys found" in issue for issue in health.issues)


@pytest.mark.asyncio
async def test_health_without_namespace(db_session, tenant_id):
    health = await TenantSchemaValidator(db_session).validate_health(tenant_id)
    assert not health.is_healthy
    assert health.to_dict()["table_count"] == 0
