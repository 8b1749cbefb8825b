"""
Tenant Schema Definition - Single Source of Truth

This module defines the complete tenant namespace structure.
All tenant tables, columns, indexes, and column renames are defined here.
The provisioner and the validator both read this registry; no other module
keeps its own list of tenant tables.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple
from enum import Enum

from conductor.core.schema_identifiers import (
    qualified_name,
    quote_identifier,
    quote_column_list,
)

# Bump whenever a table, column, index or rename is added below.
TENANT_SCHEMA_VERSION = 4


class UnknownTableError(LookupError):
    """Raised when code references a table that is not in the registry."""

    def __init__(self, table_name: str):
        super().__init__(f"Table '{table_name}' is not part of the tenant schema registry")
        self.table_name = table_name


class ColumnType(Enum):
    """PostgreSQL column types."""
    UUID = "UUID"
    VARCHAR = "VARCHAR"
    TEXT = "TEXT"
    BOOLEAN = "BOOLEAN"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    DECIMAL = "DECIMAL"
    TIMESTAMPTZ = "TIMESTAMPTZ"
    DATE = "DATE"
    JSONB = "JSONB"


@dataclass(frozen=True)
class Column:
    """Column definition."""
    name: str
    type: ColumnType
    length: Optional[int] = None  # For VARCHAR
    precision: Optional[Tuple[int, int]] = None  # For DECIMAL (precision, scale)
    nullable: bool = True
    unique: bool = False
    primary_key: bool = False
    default: Optional[str] = None  # SQL default expression
    references: Optional[str] = None  # Foreign key reference "table(column)"
    on_delete: Optional[str] = None  # CASCADE, SET NULL, etc.

    @property
    def sql_type(self) -> str:
        if self.type == ColumnType.VARCHAR:
            return f"VARCHAR({self.length or 255})"
        if self.type == ColumnType.DECIMAL and self.precision:
            return f"DECIMAL({self.precision[0]}, {self.precision[1]})"
        return self.type.value

    @property
    def referenced_table(self) -> Optional[str]:
        if not self.references:
            return None
        return self.references.split("(")[0]

    def foreign_key_name(self, table_name: str) -> str:
        return f"fk_{table_name}_{self.name}"

    def to_foreign_key_sql(self, namespace: str, table_name: str) -> str:
        """Generate ALTER TABLE ... ADD CONSTRAINT ... FOREIGN KEY for this column."""
        ref_table, ref_col = self.references.split("(")
        ref_col = ref_col.rstrip(")")
        sql = (
            f"ALTER TABLE {qualified_name(namespace, table_name)} "
            f"ADD CONSTRAINT {quote_identifier(self.foreign_key_name(table_name))} "
            f"FOREIGN KEY ({quote_identifier(self.name)}) "
            f"REFERENCES {qualified_name(namespace, ref_table)} ({quote_identifier(ref_col)})"
        )
        if self.on_delete:
            sql += f" ON DELETE {self.on_delete}"
        return sql

    def to_sql(self, namespace: str) -> str:
        """
        Generate SQL column definition for CREATE TABLE.

        Foreign keys are not part of the column definition; they are added
        as named constraints once every table exists.
        """
        parts = [quote_identifier(self.name), self.sql_type]

        if self.primary_key:
            parts.append("PRIMARY KEY")
            if self.type == ColumnType.UUID:
                parts.append("DEFAULT gen_random_uuid()")
        elif self.default:
            parts.append(f"DEFAULT {self.default}")

        if not self.nullable and not self.primary_key:
            parts.append("NOT NULL")

        if self.unique and not self.primary_key:
            parts.append("UNIQUE")

        return " ".join(parts)

    def to_add_sql(self, namespace: str, table_name: str) -> str:
        """
        Generate ALTER TABLE ... ADD COLUMN IF NOT EXISTS.

        NOT NULL is only emitted together with a default, otherwise the
        statement would fail on any table that already holds rows. A foreign
        key is added separately with to_foreign_key_sql.
        """
        parts = [
            f"ALTER TABLE {qualified_name(namespace, table_name)}",
            f"ADD COLUMN IF NOT EXISTS {quote_identifier(self.name)} {self.sql_type}",
        ]
        if self.default:
            parts.append(f"DEFAULT {self.default}")
            if not self.nullable:
                parts.append("NOT NULL")
        if self.unique:
            parts.append("UNIQUE")
        return " ".join(parts)


@dataclass(frozen=True)
class Index:
    """Index definition."""
    name: str
    columns: Tuple[str, ...]
    unique: bool = False

    def to_sql(self, namespace: str, table_name: str) -> str:
        """Generate CREATE INDEX statement."""
        unique_str = "UNIQUE " if self.unique else ""
        return (
            f"CREATE {unique_str}INDEX IF NOT EXISTS {quote_identifier(self.name)} "
            f"ON {qualified_name(namespace, table_name)} ({quote_column_list(self.columns)})"
        )


@dataclass(frozen=True)
class ColumnRename:
    """A column that changed name between registry versions."""
    old_name: str
    new_name: str

    def to_sql(self, namespace: str, table_name: str) -> str:
        return (
            f"ALTER TABLE {qualified_name(namespace, table_name)} "
            f"RENAME COLUMN {quote_identifier(self.old_name)} TO {quote_identifier(self.new_name)}"
        )


@dataclass(frozen=True)
class Table:
    """Table definition."""
    name: str
    columns: Tuple[Column, ...]
    indexes: Tuple[Index, ...] = ()
    renames: Tuple[ColumnRename, ...] = ()
    description: str = ""

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(col.name for col in self.columns)

    @property
    def foreign_keys(self) -> Tuple[Column, ...]:
        return tuple(col for col in self.columns if col.references)

    def get_column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def to_create_sql(self, namespace: str) -> str:
        """Generate CREATE TABLE statement."""
        col_defs = [col.to_sql(namespace) for col in self.columns]
        cols_sql = ",\n    ".join(col_defs)
        return (
            f"CREATE TABLE IF NOT EXISTS {qualified_name(namespace, self.name)} (\n"
            f"    {cols_sql}\n"
            f")"
        )

    def get_index_sql(self, namespace: str) -> Tuple[str, ...]:
        """Generate CREATE INDEX statements."""
        return tuple(idx.to_sql(namespace, self.name) for idx in self.indexes)


def _pk() -> Column:
    return Column("id", ColumnType.UUID, primary_key=True)


def _timestamps() -> Tuple[Column, ...]:
    return (
        Column("created_at", ColumnType.TIMESTAMPTZ, default="NOW()", nullable=False),
        Column("updated_at", ColumnType.TIMESTAMPTZ, default="NOW()", nullable=False),
    )


def _created_at() -> Column:
    return Column("created_at", ColumnType.TIMESTAMPTZ, default="NOW()", nullable=False)


# =============================================================================
# TENANT SCHEMA DEFINITION - All required tables for a tenant namespace
# Order matters: a table may only reference tables listed before it, and
# seed sets resolve parents in the same order.
# =============================================================================

TENANT_SCHEMA_TABLES: Tuple[Table, ...] = (
    # -------------------------------------------------------------------------
    # CUSTOMERS
    # -------------------------------------------------------------------------
    Table(
        name="customer_companies",
        description="Companies that group customers",
        columns=(
            _pk(),
            Column("name", ColumnType.VARCHAR, length=255, nullable=False),
            Column("document_number", ColumnType.VARCHAR, length=50),
            Column("email", ColumnType.VARCHAR, length=255),
            Column("phone", ColumnType.VARCHAR, length=30),
            Column("status", ColumnType.VARCHAR, length=20, nullable=False, default="'active'"),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_customer_companies_name", ("name",)),
        ),
    ),
    Table(
        name="customers",
        description="End customers who open tickets",
        columns=(
            _pk(),
            Column("company_id", ColumnType.UUID, references="customer_companies(id)", on_delete="SET NULL"),
            Column("first_name", ColumnType.VARCHAR, length=100, nullable=False),
            Column("last_name", ColumnType.VARCHAR, length=100),
            Column("email", ColumnType.VARCHAR, length=255, nullable=False, unique=True),
            Column("phone", ColumnType.VARCHAR, length=30),
            Column("customer_type", ColumnType.VARCHAR, length=20, nullable=False, default="'PF'"),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            Column("metadata", ColumnType.JSONB, default="'{}'::jsonb"),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_customers_company", ("company_id",)),
            Index("idx_customers_is_active", ("is_active",)),
        ),
    ),
    Table(
        name="locations",
        description="Service locations",
        columns=(
            _pk(),
            Column("name", ColumnType.VARCHAR, length=255, nullable=False),
            Column("address", ColumnType.TEXT),
            Column("city", ColumnType.VARCHAR, length=100),
            Column("state", ColumnType.VARCHAR, length=50),
            Column("zip_code", ColumnType.VARCHAR, length=20),
            Column("latitude", ColumnType.DECIMAL, precision=(10, 8)),
            Column("longitude", ColumnType.DECIMAL, precision=(11, 8)),
            Column("customer_id", ColumnType.UUID, references="customers(id)", on_delete="SET NULL"),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_locations_customer", ("customer_id",)),
            Index("idx_locations_city", ("city",)),
        ),
    ),

    # -------------------------------------------------------------------------
    # SKILLS
    # -------------------------------------------------------------------------
    Table(
        name="skills",
        description="Technical skills agents can hold",
        columns=(
            _pk(),
            Column("name", ColumnType.VARCHAR, length=255, nullable=False, unique=True),
            Column("category", ColumnType.VARCHAR, length=100),
            Column("description", ColumnType.TEXT),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_skills_category", ("category",)),
        ),
    ),
    Table(
        name="user_skills",
        description="Skill levels per agent",
        columns=(
            _pk(),
            Column("user_id", ColumnType.UUID, nullable=False),
            Column("skill_id", ColumnType.UUID, nullable=False, references="skills(id)", on_delete="CASCADE"),
            Column("level", ColumnType.INTEGER, nullable=False, default="1"),
            Column("certified_at", ColumnType.TIMESTAMPTZ),
            _created_at(),
        ),
        indexes=(
            Index("idx_user_skills_unique", ("user_id", "skill_id"), unique=True),
            Index("idx_user_skills_skill", ("skill_id",)),
        ),
    ),

    # -------------------------------------------------------------------------
    # TICKET CONFIGURATION (category hierarchy and field options)
    # -------------------------------------------------------------------------
    Table(
        name="ticket_categories",
        description="Top level of the ticket classification hierarchy",
        columns=(
            _pk(),
            Column("name", ColumnType.VARCHAR, length=255, nullable=False, unique=True),
            Column("description", ColumnType.TEXT),
            Column("color", ColumnType.VARCHAR, length=7),
            Column("icon", ColumnType.VARCHAR, length=50),
            Column("sort_order", ColumnType.INTEGER, nullable=False, default="0"),
            Column("active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
    ),
    Table(
        name="ticket_subcategories",
        description="Second level of the ticket classification hierarchy",
        columns=(
            _pk(),
            Column("category_id", ColumnType.UUID, nullable=False, references="ticket_categories(id)", on_delete="CASCADE"),
            Column("name", ColumnType.VARCHAR, length=255, nullable=False),
            Column("description", ColumnType.TEXT),
            Column("color", ColumnType.VARCHAR, length=7),
            Column("icon", ColumnType.VARCHAR, length=50),
            Column("sort_order", ColumnType.INTEGER, nullable=False, default="0"),
            Column("active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_ticket_subcategories_unique", ("category_id", "name"), unique=True),
        ),
    ),
    Table(
        name="ticket_actions",
        description="Third level of the ticket classification hierarchy",
        columns=(
            _pk(),
            Column("subcategory_id", ColumnType.UUID, nullable=False, references="ticket_subcategories(id)", on_delete="CASCADE"),
            Column("name", ColumnType.VARCHAR, length=255, nullable=False),
            Column("description", ColumnType.TEXT),
            Column("action_type", ColumnType.VARCHAR, length=50, nullable=False, default="'standard'"),
            Column("estimated_time_minutes", ColumnType.INTEGER),
            Column("color", ColumnType.VARCHAR, length=7),
            Column("icon", ColumnType.VARCHAR, length=50),
            Column("sort_order", ColumnType.INTEGER, nullable=False, default="0"),
            Column("active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_ticket_actions_unique", ("subcategory_id", "name"), unique=True),
        ),
    ),
    Table(
        name="ticket_field_configurations",
        description="Configurable ticket fields (status, priority, ...)",
        columns=(
            _pk(),
            Column("field_name", ColumnType.VARCHAR, length=50, nullable=False, unique=True),
            Column("display_name", ColumnType.VARCHAR, length=100, nullable=False),
            Column("field_type", ColumnType.VARCHAR, length=20, nullable=False, default="'select'"),
            Column("is_required", ColumnType.BOOLEAN, default="FALSE"),
            Column("is_system_field", ColumnType.BOOLEAN, default="FALSE"),
            Column("sort_order", ColumnType.INTEGER, nullable=False, default="0"),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
    ),
    Table(
        name="ticket_field_options",
        description="Allowed values of configurable ticket fields",
        columns=(
            _pk(),
            Column("field_config_id", ColumnType.UUID, nullable=False, references="ticket_field_configurations(id)", on_delete="CASCADE"),
            Column("option_value", ColumnType.VARCHAR, length=50, nullable=False),
            Column("display_label", ColumnType.VARCHAR, length=100, nullable=False),
            Column("color_hex", ColumnType.VARCHAR, length=7),
            Column("sort_order", ColumnType.INTEGER, nullable=False, default="0"),
            Column("is_default", ColumnType.BOOLEAN, default="FALSE"),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            Column("option_config", ColumnType.JSONB),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_ticket_field_options_unique", ("field_config_id", "option_value"), unique=True),
        ),
    ),

    # -------------------------------------------------------------------------
    # TICKETS
    # -------------------------------------------------------------------------
    Table(
        name="tickets",
        description="Support tickets",
        columns=(
            _pk(),
            Column("number", ColumnType.VARCHAR, length=40, unique=True),
            Column("subject", ColumnType.VARCHAR, length=500, nullable=False),
            Column("description", ColumnType.TEXT),
            Column("status", ColumnType.VARCHAR, length=50, nullable=False, default="'new'"),
            Column("priority", ColumnType.VARCHAR, length=50, nullable=False, default="'medium'"),
            Column("impact", ColumnType.VARCHAR, length=50),
            Column("urgency", ColumnType.VARCHAR, length=50),
            Column("channel", ColumnType.VARCHAR, length=50, nullable=False, default="'portal'"),
            Column("customer_id", ColumnType.UUID, references="customers(id)", on_delete="SET NULL"),
            Column("category_id", ColumnType.UUID, references="ticket_categories(id)", on_delete="SET NULL"),
            Column("subcategory_id", ColumnType.UUID, references="ticket_subcategories(id)", on_delete="SET NULL"),
            Column("location_id", ColumnType.UUID, references="locations(id)", on_delete="SET NULL"),
            Column("assigned_to_id", ColumnType.UUID),
            Column("due_at", ColumnType.TIMESTAMPTZ),
            Column("resolved_at", ColumnType.TIMESTAMPTZ),
            Column("closed_at", ColumnType.TIMESTAMPTZ),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_tickets_status", ("status",)),
            Index("idx_tickets_priority", ("priority",)),
            Index("idx_tickets_customer", ("customer_id",)),
            Index("idx_tickets_assigned", ("assigned_to_id",)),
            Index("idx_tickets_created", ("created_at",)),
        ),
    ),
    Table(
        name="ticket_messages",
        description="Conversation thread of a ticket",
        columns=(
            _pk(),
            Column("ticket_id", ColumnType.UUID, nullable=False, references="tickets(id)", on_delete="CASCADE"),
            Column("author_id", ColumnType.UUID),
            Column("author_type", ColumnType.VARCHAR, length=20, nullable=False, default="'agent'"),
            Column("message", ColumnType.TEXT, nullable=False),
            Column("is_internal", ColumnType.BOOLEAN, default="FALSE"),
            Column("attachments", ColumnType.JSONB, default="'[]'::jsonb"),
            _created_at(),
        ),
        indexes=(
            Index("idx_ticket_messages_ticket", ("ticket_id",)),
            Index("idx_ticket_messages_created", ("created_at",)),
        ),
    ),
    Table(
        name="ticket_relationships",
        description="Links between tickets (duplicate, parent, related)",
        columns=(
            _pk(),
            Column("source_ticket_id", ColumnType.UUID, nullable=False, references="tickets(id)", on_delete="CASCADE"),
            Column("target_ticket_id", ColumnType.UUID, nullable=False, references="tickets(id)", on_delete="CASCADE"),
            Column("relationship_type", ColumnType.VARCHAR, length=50, nullable=False),
            Column("description", ColumnType.TEXT),
            Column("created_by", ColumnType.UUID),
            _created_at(),
        ),
        indexes=(
            Index(
                "idx_ticket_relationships_unique",
                ("source_ticket_id", "target_ticket_id", "relationship_type"),
                unique=True,
            ),
        ),
    ),

    # -------------------------------------------------------------------------
    # TIMECARDS
    # -------------------------------------------------------------------------
    Table(
        name="signature_keys",
        description="Keys used to sign timecard entries",
        columns=(
            _pk(),
            Column("key_name", ColumnType.VARCHAR, length=100, nullable=False, unique=True),
            Column("algorithm", ColumnType.VARCHAR, length=30, nullable=False, default="'HMAC-SHA256'"),
            Column("secret", ColumnType.VARCHAR, length=128, nullable=False),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            Column("rotated_at", ColumnType.TIMESTAMPTZ),
            _created_at(),
        ),
    ),
    Table(
        name="timecards",
        description="Agent time records",
        columns=(
            _pk(),
            Column("user_id", ColumnType.UUID, nullable=False),
            Column("ticket_id", ColumnType.UUID, references="tickets(id)", on_delete="SET NULL"),
            Column("record_date", ColumnType.DATE, nullable=False),
            Column("check_in", ColumnType.TIMESTAMPTZ),
            Column("check_out", ColumnType.TIMESTAMPTZ),
            Column("break_minutes", ColumnType.INTEGER, nullable=False, default="0"),
            Column("total_minutes", ColumnType.INTEGER),
            Column("status", ColumnType.VARCHAR, length=20, nullable=False, default="'pending'"),
            Column("approved_by", ColumnType.UUID),
            Column("approved_at", ColumnType.TIMESTAMPTZ),
            Column("signature_key_id", ColumnType.UUID, references="signature_keys(id)", on_delete="SET NULL"),
            Column("signature_hash", ColumnType.VARCHAR, length=128),
            Column("notes", ColumnType.TEXT),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_timecards_user_date", ("user_id", "record_date")),
            Index("idx_timecards_status", ("status",)),
        ),
    ),

    # -------------------------------------------------------------------------
    # KNOWLEDGE BASE, APPROVALS, CHAT
    # -------------------------------------------------------------------------
    Table(
        name="knowledge_base_articles",
        description="Knowledge base articles",
        columns=(
            _pk(),
            Column("title", ColumnType.VARCHAR, length=500, nullable=False),
            Column("slug", ColumnType.VARCHAR, length=255, nullable=False, unique=True),
            Column("content", ColumnType.TEXT),
            Column("category", ColumnType.VARCHAR, length=100),
            Column("tags", ColumnType.JSONB, default="'[]'::jsonb"),
            Column("status", ColumnType.VARCHAR, length=20, nullable=False, default="'draft'"),
            Column("visibility", ColumnType.VARCHAR, length=20, nullable=False, default="'internal'"),
            Column("author_id", ColumnType.UUID),
            Column("view_count", ColumnType.INTEGER, nullable=False, default="0"),
            Column("published_at", ColumnType.TIMESTAMPTZ),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_kb_articles_status", ("status",)),
            Index("idx_kb_articles_category", ("category",)),
        ),
    ),
    Table(
        name="approval_requests",
        description="Pending and decided approvals",
        columns=(
            _pk(),
            Column("entity_type", ColumnType.VARCHAR, length=50, nullable=False),
            Column("entity_id", ColumnType.UUID, nullable=False),
            Column("requested_by", ColumnType.UUID, nullable=False),
            Column("approver_id", ColumnType.UUID),
            Column("status", ColumnType.VARCHAR, length=20, nullable=False, default="'pending'"),
            Column("amount", ColumnType.DECIMAL, precision=(12, 2)),
            Column("reason", ColumnType.TEXT),
            Column("decided_at", ColumnType.TIMESTAMPTZ),
            Column("decision_notes", ColumnType.TEXT),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_approval_requests_status", ("status",)),
            Index("idx_approval_requests_entity", ("entity_type", "entity_id")),
        ),
    ),
    Table(
        name="chat_messages",
        description="Internal and customer chat",
        columns=(
            _pk(),
            Column("conversation_id", ColumnType.UUID, nullable=False),
            Column("ticket_id", ColumnType.UUID, references="tickets(id)", on_delete="SET NULL"),
            Column("sender_id", ColumnType.UUID),
            Column("sender_type", ColumnType.VARCHAR, length=20, nullable=False, default="'agent'"),
            Column("content", ColumnType.TEXT, nullable=False),
            Column("read_at", ColumnType.TIMESTAMPTZ),
            _created_at(),
        ),
        indexes=(
            Index("idx_chat_messages_conversation", ("conversation_id",)),
            Index("idx_chat_messages_created", ("created_at",)),
        ),
    ),

    # -------------------------------------------------------------------------
    # OMNIBRIDGE (integration catalog and unified inbox)
    # -------------------------------------------------------------------------
    Table(
        name="integrations",
        description="Channel integrations available to the tenant",
        columns=(
            _pk(),
            Column("code", ColumnType.VARCHAR, length=50, nullable=False, unique=True),
            Column("name", ColumnType.VARCHAR, length=100, nullable=False),
            Column("category", ColumnType.VARCHAR, length=50, nullable=False),
            Column("description", ColumnType.TEXT),
            Column("status", ColumnType.VARCHAR, length=20, nullable=False, default="'disconnected'"),
            Column("is_enabled", ColumnType.BOOLEAN, default="FALSE"),
            Column("config", ColumnType.JSONB, default="'{}'::jsonb"),
            Column("last_sync_at", ColumnType.TIMESTAMPTZ),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_integrations_category", ("category",)),
        ),
    ),
    Table(
        name="omnibridge_messages",
        description="Unified inbox of inbound channel messages",
        columns=(
            _pk(),
            Column("integration_id", ColumnType.UUID, references="integrations(id)", on_delete="SET NULL"),
            Column("channel_type", ColumnType.VARCHAR, length=50, nullable=False),
            Column("external_id", ColumnType.VARCHAR, length=255),
            Column("from_address", ColumnType.VARCHAR, length=255),
            Column("to_address", ColumnType.VARCHAR, length=255),
            Column("subject", ColumnType.VARCHAR, length=500),
            Column("content", ColumnType.TEXT),
            Column("status", ColumnType.VARCHAR, length=20, nullable=False, default="'unread'"),
            Column("priority", ColumnType.VARCHAR, length=20, nullable=False, default="'normal'"),
            Column("ticket_id", ColumnType.UUID, references="tickets(id)", on_delete="SET NULL"),
            Column("customer_id", ColumnType.UUID, references="customers(id)", on_delete="SET NULL"),
            Column("metadata", ColumnType.JSONB, default="'{}'::jsonb"),
            Column("received_at", ColumnType.TIMESTAMPTZ, nullable=False, default="NOW()"),
            Column("processed_at", ColumnType.TIMESTAMPTZ),
            _created_at(),
        ),
        indexes=(
            Index("idx_omnibridge_messages_external", ("channel_type", "external_id"), unique=True),
            Index("idx_omnibridge_messages_status", ("status",)),
            Index("idx_omnibridge_messages_received", ("received_at",)),
        ),
    ),

    # -------------------------------------------------------------------------
    # PRICE LISTS
    # -------------------------------------------------------------------------
    Table(
        name="price_lists",
        description="Unit price lists per customer or contract",
        columns=(
            _pk(),
            Column("name", ColumnType.VARCHAR, length=255, nullable=False),
            Column("code", ColumnType.VARCHAR, length=50, nullable=False, unique=True),
            Column("version", ColumnType.VARCHAR, length=20, nullable=False, default="'1.0'"),
            Column("customer_id", ColumnType.UUID, references="customers(id)", on_delete="SET NULL"),
            Column("valid_from", ColumnType.TIMESTAMPTZ, nullable=False, default="NOW()"),
            Column("valid_to", ColumnType.TIMESTAMPTZ),
            Column("currency", ColumnType.VARCHAR, length=3, nullable=False, default="'BRL'"),
            Column("automatic_margin", ColumnType.DECIMAL, precision=(5, 2)),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            Column("notes", ColumnType.TEXT),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_price_lists_customer", ("customer_id",)),
            Index("idx_price_lists_validity", ("valid_from", "valid_to")),
        ),
        renames=(
            ColumnRename("effective_date", "valid_from"),
        ),
    ),
    Table(
        name="price_list_items",
        description="Items of a price list",
        columns=(
            _pk(),
            Column("price_list_id", ColumnType.UUID, nullable=False, references="price_lists(id)", on_delete="CASCADE"),
            Column("item_code", ColumnType.VARCHAR, length=100, nullable=False),
            Column("description", ColumnType.TEXT),
            Column("unit_price", ColumnType.DECIMAL, precision=(12, 2), nullable=False),
            Column("special_price", ColumnType.DECIMAL, precision=(12, 2)),
            Column("unit", ColumnType.VARCHAR, length=20, nullable=False, default="'UN'"),
            Column("is_active", ColumnType.BOOLEAN, default="TRUE"),
            *_timestamps(),
        ),
        indexes=(
            Index("idx_price_list_items_unique", ("price_list_id", "item_code"), unique=True),
        ),
    ),

    # -------------------------------------------------------------------------
    # ACTIVITY AND AUDIT
    # -------------------------------------------------------------------------
    Table(
        name="activity_logs",
        description="User-facing activity feed",
        columns=(
            _pk(),
            Column("actor_id", ColumnType.UUID),
            Column("entity_type", ColumnType.VARCHAR, length=50, nullable=False),
            Column("entity_id", ColumnType.UUID),
            Column("action", ColumnType.VARCHAR, length=50, nullable=False),
            Column("details", ColumnType.JSONB),
            _created_at(),
        ),
        indexes=(
            Index("idx_activity_logs_entity", ("entity_type", "entity_id")),
            Index("idx_activity_logs_created", ("created_at",)),
        ),
    ),
    Table(
        name="audit_logs",
        description="Audit trail for all actions",
        columns=(
            _pk(),
            Column("user_id", ColumnType.UUID),
            Column("action", ColumnType.VARCHAR, length=50, nullable=False),
            Column("entity_type", ColumnType.VARCHAR, length=50, nullable=False),
            Column("entity_id", ColumnType.UUID),
            Column("old_values", ColumnType.JSONB),
            Column("new_values", ColumnType.JSONB),
            Column("description", ColumnType.TEXT),
            Column("ip_address", ColumnType.VARCHAR, length=50),
            Column("user_agent", ColumnType.VARCHAR, length=500),
            _created_at(),
        ),
        indexes=(
            Index("idx_audit_action", ("action",)),
            Index("idx_audit_entity", ("entity_type", "entity_id")),
            Index("idx_audit_user", ("user_id",)),
            Index("idx_audit_created", ("created_at",)),
        ),
    ),
)

_TABLES_BY_NAME: Dict[str, Table] = {table.name: table for table in TENANT_SCHEMA_TABLES}
_REQUIRED_TABLES: Tuple[str, ...] = tuple(table.name for table in TENANT_SCHEMA_TABLES)


def get_required_tables() -> Tuple[str, ...]:
    """Ordered names of every table a tenant namespace must contain."""
    return _REQUIRED_TABLES


def get_table_definition(name: str) -> Table:
    """Get table definition by name."""
    try:
        return _TABLES_BY_NAME[name]
    except KeyError:
        raise UnknownTableError(name) from None


def is_registered_table(name: str) -> bool:
    return name in _TABLES_BY_NAME


def qualified_table(namespace: str, name: str) -> str:
    """
    Quoted ``"namespace"."table"`` for a registered tenant table.

    This is the only way tenant tables should be addressed in SQL.
    """
    get_table_definition(name)
    return qualified_name(namespace, name)


def get_column_renames(name: str) -> Tuple[ColumnRename, ...]:
    return get_table_definition(name).renames


def iter_foreign_keys() -> Iterator[Tuple[str, Column]]:
    """Yield (table_name, column) for every foreign key in the registry."""
    for table in TENANT_SCHEMA_TABLES:
        for col in table.columns:
            if col.references:
                yield table.name, col


def count_indexes() -> int:
    """Number of explicitly declared indexes across the registry."""
    return sum(len(table.indexes) for table in TENANT_SCHEMA_TABLES)


def count_foreign_keys() -> int:
    return sum(1 for _ in iter_foreign_keys())
