"""
Tenant name canonicalization and database naming.

Company names arrive from humans ("Acme Corp!", "ACME corp") and must be turned
into a canonical key before they can be used as a storage identifier. The
canonical key is the sole identity of a tenant: two different company names that
canonicalize to the same key address the same tenant database.

Canonicalization:
    1. Lowercase the name
    2. Replace every character outside [a-z0-9] with "_"
    3. Collapse runs of "_" into a single "_"
    4. Strip leading and trailing "_"

    The result is deterministic and idempotent:
    canonicalize_tenant_name(canonicalize_tenant_name(x)) == canonicalize_tenant_name(x)

Database Naming:
    Tenant databases follow the pattern: {prefix}_{canonical_key}
    e.g. "Acme Corp" -> "acme_corp" -> "logos_ai_acme_corp"

Example:
    ```python
    from common.database.tenant_naming import (
        canonicalize_tenant_name,
        get_tenant_database_name,
    )

    key = canonicalize_tenant_name("Acme Corp!")   # "acme_corp"
    db_name = get_tenant_database_name(key)        # "logos_ai_acme_corp"
    ```
"""

import re

from common.exceptions import InvalidTenantName

DEFAULT_TENANT_DATABASE_PREFIX = "logos_ai"
DEFAULT_MIN_LENGTH = 2
DEFAULT_MAX_LENGTH = 50

_INVALID_CHARACTERS = re.compile(r"[^a-z0-9]")
_REPEATED_UNDERSCORES = re.compile(r"_+")


def canonicalize_tenant_name(raw: str) -> str:
    """
    Map a human-supplied company name to its canonical tenant key.

    This is a total, pure function: it never raises for string input. Empty or
    all-invalid input canonicalizes to "", which callers must reject (see
    validate_tenant_name).

    Args:
        raw: Company name as supplied by a caller.

    Returns:
        Canonical key containing only [a-z0-9_], with no leading, trailing or
        repeated underscores.

    Example:
        ```python
        canonicalize_tenant_name("Acme Corp!")  # "acme_corp"
        canonicalize_tenant_name("acme_corp")   # "acme_corp"
        canonicalize_tenant_name("!!!")         # ""
        ```
    """
    lowered = raw.lower()
    replaced = _INVALID_CHARACTERS.sub("_", lowered)
    collapsed = _REPEATED_UNDERSCORES.sub("_", replaced)
    return collapsed.strip("_")


def validate_tenant_name(
    raw: str | None,
    min_length: int = DEFAULT_MIN_LENGTH,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> str:
    """
    Canonicalize a company name and enforce the tenant naming policy.

    Args:
        raw: Company name (or an already canonical key).
        min_length: Minimum length of the canonical key.
        max_length: Maximum length of the canonical key.

    Returns:
        The canonical tenant key.

    Raises:
        InvalidTenantName: If the name is missing, canonicalizes to an empty
            string, or the canonical key is outside [min_length, max_length].
    """
    if raw is None or not isinstance(raw, str):
        raise InvalidTenantName("Company name is required.")

    tenant_key = canonicalize_tenant_name(raw)
    if not tenant_key:
        raise InvalidTenantName(
            "Company name must contain at least one letter or digit."
        )
    if len(tenant_key) < min_length or len(tenant_key) > max_length:
        raise InvalidTenantName(
            f"Company name must be between {min_length} and {max_length} characters."
        )
    return tenant_key


def get_tenant_database_name(
    tenant_key: str, prefix: str = DEFAULT_TENANT_DATABASE_PREFIX
) -> str:
    """
    Generate the physical database name for a canonical tenant key.

    Args:
        tenant_key: Canonical tenant key (output of validate_tenant_name).
        prefix: Tenant database prefix, TENANT_DATABASE_PREFIX in settings.

    Returns:
        Database name in the format: {prefix}_{tenant_key}
    """
    return f"{prefix}_{tenant_key}"


def get_tenant_key_from_database_name(
    database_name: str, prefix: str = DEFAULT_TENANT_DATABASE_PREFIX
) -> str | None:
    """
    Recover the canonical tenant key from a tenant database name.

    Returns:
        The tenant key, or None if the name does not carry the tenant prefix.
    """
    marker = f"{prefix}_"
    if not database_name.startswith(marker) or len(database_name) == len(marker):
        return None
    return database_name[len(marker):]


def tenant_database_name_pattern(prefix: str = DEFAULT_TENANT_DATABASE_PREFIX) -> str:
    """
    Build a LIKE pattern matching every tenant database name.

    Underscores are LIKE wildcards, so they are escaped with a backslash; the
    pattern must be used with ESCAPE '\\'.
    """
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}\\_%"
