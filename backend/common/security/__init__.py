"""
Common security utilities for authentication and tenant authorization.
"""

from .auth import (
    Principal,
    Role,
    authenticate,
    require_admin,
    require_manager,
)
from .tenant_guard import TenantAccessGuard, TenantContext

__all__ = [
    "Principal",
    "Role",
    "TenantAccessGuard",
    "TenantContext",
    "authenticate",
    "require_admin",
    "require_manager",
]
