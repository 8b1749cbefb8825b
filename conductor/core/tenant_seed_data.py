"""
Default rows inserted into every new tenant namespace.

Each seed set names the unique columns it conflicts on, so provisioning the
same namespace twice never inserts a row twice. Child rows (subcategories,
actions, field options) locate their parent by a natural key instead of a
generated id.
"""

import json
import secrets
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from conductor.core.schema_identifiers import quote_identifier, quote_column_list
from conductor.core.tenant_schema_definition import get_table_definition, qualified_table


@dataclass(frozen=True)
class ParentLookup:
    """Resolve a child's foreign key from a parent row matched by natural key."""
    column: str  # FK column on the child table
    table: str  # parent table
    match_column: str  # natural key column on the parent
    key: str  # entry in the seed row holding the natural key value


@dataclass(frozen=True)
class SeedSet:
    table: str
    conflict_columns: Tuple[str, ...]
    rows: Tuple[Dict[str, Any], ...]
    parent: Optional[ParentLookup] = None
    json_columns: Tuple[str, ...] = field(default=())

    def insert_columns(self, row: Dict[str, Any]) -> List[str]:
        cols = [c for c in row if not (self.parent and c == self.parent.key)]
        return cols

    def to_insert(self, namespace: str, row: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        """Build the INSERT ... ON CONFLICT DO NOTHING statement and its params for one row."""
        table_def = get_table_definition(self.table)
        cols = self.insert_columns(row)
        for col in cols:
            if table_def.get_column(col) is None:
                raise ValueError(f"Seed column '{col}' is not defined on '{self.table}'")

        params: Dict[str, Any] = {}
        values = []
        for col in cols:
            value = row[col]
            if callable(value):
                value = value()
            if col in self.json_columns:
                params[col] = None if value is None else json.dumps(value)
                values.append(f"CAST(:{col} AS JSONB)")
            else:
                params[col] = value
                values.append(f":{col}")

        target = qualified_table(namespace, self.table)
        conflict = quote_column_list(self.conflict_columns)

        if self.parent is None:
            sql = (
                f"INSERT INTO {target} ({quote_column_list(cols)}) "
                f"VALUES ({', '.join(values)}) "
                f"ON CONFLICT ({conflict}) DO NOTHING"
            )
            return sql, params

        parent_table = qualified_table(namespace, self.parent.table)
        params["parent_key"] = row[self.parent.key]
        sql = (
            f"INSERT INTO {target} ({quote_column_list([self.parent.column] + cols)}) "
            f"SELECT p.{quote_identifier('id')}, {', '.join(values)} "
            f"FROM {parent_table} AS p "
            f"WHERE p.{quote_identifier(self.parent.match_column)} = :parent_key "
            f"ON CONFLICT ({conflict}) DO NOTHING"
        )
        return sql, params


def _new_signing_secret() -> str:
    return secrets.token_hex(32)


# Same id in every namespace, so the company row is conflict-safe on its key.
DEFAULT_COMPANY_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


_CATEGORY_TREE = (
    ("Technical Support", "Infrastructure, hardware and software problems", "#3b82f6", "wrench", (
        ("Hardware", "Physical equipment problems", "#ef4444", "monitor"),
        ("Software", "Applications and licenses", "#8b5cf6", "code"),
        ("Network", "Connectivity and infrastructure", "#06b6d4", "wifi"),
    )),
    ("Customer Service", "Questions, complaints and general support", "#10b981", "user-check", (
        ("General Questions", "Questions about products and services", "#10b981", "help-circle"),
        ("Complaints", "Dissatisfaction with products or services", "#f59e0b", "alert-triangle"),
        ("Suggestions", "Improvement ideas and feedback", "#3b82f6", "lightbulb"),
    )),
    ("Financial", "Billing, payments and contracts", "#f59e0b", "dollar-sign", (
        ("Billing", "Charges and invoices", "#f59e0b", "receipt"),
        ("Payments", "Payment methods", "#10b981", "credit-card"),
        ("Contracts", "Contract changes and renewals", "#8b5cf6", "file-signature"),
    )),
    ("Administrative", "Internal processes, documentation and management", "#8b5cf6", "file-text", ()),
)

# subcategory name -> (action name, description, action type, estimated minutes)
_ACTIONS = (
    ("Hardware", (
        ("Replace Equipment", "Swap a faulty device for a working one", "corrective", 60),
        ("On-site Repair", "Technician visit to repair equipment", "corrective", 120),
    )),
    ("Software", (
        ("Install Application", "Install or update an application", "standard", 30),
        ("Renew License", "Renew or reassign a software license", "standard", 15),
    )),
    ("Network", (
        ("Restore Connectivity", "Diagnose and restore network access", "corrective", 45),
    )),
    ("General Questions", (
        ("Answer Question", "Reply with product or service information", "standard", 10),
    )),
    ("Complaints", (
        ("Investigate Complaint", "Review the case and contact the customer", "standard", 60),
    )),
    ("Billing", (
        ("Issue Invoice Copy", "Send a copy of an invoice", "standard", 10),
        ("Correct Charge", "Review and correct a billing error", "corrective", 30),
    )),
    ("Payments", (
        ("Confirm Payment", "Confirm receipt of a payment", "standard", 10),
    )),
    ("Contracts", (
        ("Renew Contract", "Prepare a contract renewal", "standard", 60),
    )),
)

_FIELD_OPTIONS = (
    ("status", "Status", (
        ("new", "New", "#f59e0b", True, "open"),
        ("open", "Open", "#3b82f6", False, "open"),
        ("in_progress", "In Progress", "#8b5cf6", False, "open"),
        ("resolved", "Resolved", "#10b981", False, "paused"),
        ("closed", "Closed", "#6b7280", False, "closed"),
    )),
    ("priority", "Priority", (
        ("low", "Low", "#10b981", False, None),
        ("medium", "Medium", "#f59e0b", True, None),
        ("high", "High", "#ef4444", False, None),
        ("critical", "Critical", "#dc2626", False, None),
    )),
    ("impact", "Impact", (
        ("low", "Low", "#10b981", True, None),
        ("medium", "Medium", "#f59e0b", False, None),
        ("high", "High", "#ef4444", False, None),
    )),
    ("urgency", "Urgency", (
        ("low", "Low", "#10b981", True, None),
        ("medium", "Medium", "#f59e0b", False, None),
        ("high", "High", "#ef4444", False, None),
    )),
)

_INTEGRATIONS = (
    ("imap-email", "IMAP Email", "communication", "Inbound email over IMAP"),
    ("smtp-email", "SMTP Email", "communication", "Outbound email over SMTP"),
    ("gmail-oauth2", "Gmail OAuth2", "communication", "Gmail mailbox via OAuth2"),
    ("outlook-oauth2", "Outlook OAuth2", "communication", "Microsoft 365 mailbox via OAuth2"),
    ("sendgrid-email", "SendGrid", "communication", "Transactional email delivery"),
    ("whatsapp-business", "WhatsApp Business", "communication", "WhatsApp Business API"),
    ("twilio-sms", "Twilio SMS", "communication", "SMS through Twilio"),
    ("telegram", "Telegram", "communication", "Telegram bot messages"),
    ("slack", "Slack", "collaboration", "Slack notifications"),
    ("zapier", "Zapier", "automation", "Zapier workflows"),
    ("webhooks", "Webhooks", "automation", "Outgoing HTTP webhooks"),
)


TENANT_SEED_SETS: Tuple[SeedSet, ...] = (
    SeedSet(
        table="customer_companies",
        conflict_columns=("id",),
        rows=(
            {
                "id": DEFAULT_COMPANY_ID,
                "name": "Default",
                "status": "active",
                "is_active": True,
            },
        ),
    ),
    SeedSet(
        table="integrations",
        conflict_columns=("code",),
        json_columns=("config",),
        rows=tuple(
            {
                "code": code,
                "name": name,
                "category": category,
                "description": description,
                "status": "disconnected",
                "is_enabled": False,
                "config": {},
            }
            for code, name, category, description in _INTEGRATIONS
        ),
    ),
    SeedSet(
        table="ticket_categories",
        conflict_columns=("name",),
        rows=tuple(
            {
                "name": name,
                "description": description,
                "color": color,
                "icon": icon,
                "sort_order": position,
                "active": True,
            }
            for position, (name, description, color, icon, _) in enumerate(_CATEGORY_TREE, start=1)
        ),
    ),
    SeedSet(
        table="ticket_subcategories",
        conflict_columns=("category_id", "name"),
        parent=ParentLookup(
            column="category_id",
            table="ticket_categories",
            match_column="name",
            key="category_name",
        ),
        rows=tuple(
            {
                "category_name": category_name,
                "name": name,
                "description": description,
                "color": color,
                "icon": icon,
                "sort_order": position,
                "active": True,
            }
            for category_name, _, _, _, children in _CATEGORY_TREE
            for position, (name, description, color, icon) in enumerate(children, start=1)
        ),
    ),
    SeedSet(
        table="ticket_actions",
        conflict_columns=("subcategory_id", "name"),
        parent=ParentLookup(
            column="subcategory_id",
            table="ticket_subcategories",
            match_column="name",
            key="subcategory_name",
        ),
        rows=tuple(
            {
                "subcategory_name": subcategory_name,
                "name": name,
                "description": description,
                "action_type": action_type,
                "estimated_time_minutes": minutes,
                "sort_order": position,
                "active": True,
            }
            for subcategory_name, actions in _ACTIONS
            for position, (name, description, action_type, minutes) in enumerate(actions, start=1)
        ),
    ),
    SeedSet(
        table="ticket_field_configurations",
        conflict_columns=("field_name",),
        rows=tuple(
            {
                "field_name": field_name,
                "display_name": display_name,
                "field_type": "select",
                "is_required": True,
                "is_system_field": True,
                "sort_order": position,
                "is_active": True,
            }
            for position, (field_name, display_name, _) in enumerate(_FIELD_OPTIONS, start=1)
        ),
    ),
    SeedSet(
        table="ticket_field_options",
        conflict_columns=("field_config_id", "option_value"),
        json_columns=("option_config",),
        parent=ParentLookup(
            column="field_config_id",
            table="ticket_field_configurations",
            match_column="field_name",
            key="field_name",
        ),
        rows=tuple(
            {
                "field_name": field_name,
                "option_value": value,
                "display_label": label,
                "color_hex": color,
                "sort_order": position,
                "is_default": is_default,
                "is_active": True,
                "option_config": {"statusType": status_type} if status_type else None,
            }
            for field_name, _, options in _FIELD_OPTIONS
            for position, (value, label, color, is_default, status_type) in enumerate(options, start=1)
        ),
    ),
    SeedSet(
        table="signature_keys",
        conflict_columns=("key_name",),
        rows=(
            {
                "key_name": "default",
                "algorithm": "HMAC-SHA256",
                "secret": _new_signing_secret,
                "is_active": True,
            },
        ),
    ),
)


def count_seed_rows() -> int:
    return sum(len(seed.rows) for seed in TENANT_SEED_SETS)
