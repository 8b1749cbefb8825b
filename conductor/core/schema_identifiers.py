"""
Safe SQL identifiers for tenant namespaces.

Every schema-qualified statement in the codebase gets its identifiers from
here. Values always travel as bound parameters; only names that pass these
checks are ever interpolated into SQL text.
"""

import re

NAMESPACE_PREFIX = "tenant_"

_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")
_NAMESPACE_RE = re.compile(
    r"^tenant_[0-9a-f]{8}_[0-9a-f]{4}_[0-9a-f]{4}_[0-9a-f]{4}_[0-9a-f]{12}$"
)


def is_namespace(name: str) -> bool:
    """True if ``name`` has the exact shape of a tenant namespace."""
    return bool(_NAMESPACE_RE.match(name or ""))


def quote_identifier(name: str) -> str:
    """Double-quote a lowercase SQL identifier, rejecting anything unusual."""
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Unsafe SQL identifier: {name!r}")
    return f'"{name}"'


def quote_namespace(namespace: str) -> str:
    if not is_namespace(namespace):
        raise ValueError(f"Not a tenant namespace: {namespace!r}")
    return quote_identifier(namespace)


def qualified_name(namespace: str, name: str) -> str:
    """Return ``"namespace"."name"`` for a tenant namespace."""
    return f"{quote_namespace(namespace)}.{quote_identifier(name)}"


def quote_column_list(columns) -> str:
    return ", ".join(quote_identifier(c) for c in columns)
