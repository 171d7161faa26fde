"""
Authentication and authorization utilities.

Turns request credentials into a verified Principal. Two kinds of credentials
are accepted:

    - Service API keys (X-API-Key header, or a bearer token equal to a key in
      SERVICE_API_KEYS): machine clients. They authenticate as a service
      principal with no fixed tenant; every request must name its tenant.
    - Bearer JWTs signed with JWT_SECRET: human users. The token carries the
      user id ("sub" or "id"), the role and the company name
      ("company_name" or "companyName").

Example:
    ```python
    from common.security.auth import authenticate, require_manager

    principal = authenticate(authorization="Bearer eyJ...", api_key=None, settings=settings)
    require_manager(principal)
    ```
"""

from enum import Enum
import hmac
from typing import Any, Optional

import jwt
from loguru import logger
from pydantic import BaseModel, field_validator

from common.config.settings import TenantServiceSettings
from common.database.tenant_naming import canonicalize_tenant_name
from common.exceptions import AuthenticationFailed, InsufficientRole


class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"
    SERVICE = "service"


MANAGER_ROLES = frozenset({Role.MANAGER, Role.ADMIN, Role.SERVICE})


class Principal(BaseModel):
    """
    The authenticated caller.

    Attributes:
        id: User id, or "service" for API key clients.
        role: Caller role.
        tenant_key: Canonical key of the caller's company. None for service
            principals, which name the tenant per request.
    """

    id: str
    role: Role
    tenant_key: Optional[str] = None

    @field_validator("tenant_key", mode="before")
    @classmethod
    def canonicalize_tenant(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        tenant_key = canonicalize_tenant_name(str(v))
        return tenant_key or None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_service(self) -> bool:
        return self.role == Role.SERVICE


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationFailed("Invalid authorization header. Expected a Bearer token.")
    return token.strip()


def _is_service_key(candidate: str, settings: TenantServiceSettings) -> bool:
    return any(
        hmac.compare_digest(candidate.encode(), key.encode())
        for key in settings.SERVICE_API_KEYS
    )


def decode_access_token(token: str, settings: TenantServiceSettings) -> dict[str, Any]:
    """
    Verify a JWT signature and expiry and return its claims.

    Raises:
        AuthenticationFailed: If JWT_SECRET is not configured or the token is invalid.
    """
    if not settings.JWT_SECRET:
        logger.error("JWT_SECRET is not configured; rejecting bearer token")
        raise AuthenticationFailed()
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationFailed("Token has expired.", internal_error=e) from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationFailed("Invalid token.", internal_error=e) from e


def principal_from_claims(claims: dict[str, Any]) -> Principal:
    """
    Build a Principal from verified JWT claims.

    Raises:
        AuthenticationFailed: If the user id or role is missing or unknown.
    """
    user_id = claims.get("sub") or claims.get("id")
    role = claims.get("role")
    if user_id is None or role is None:
        raise AuthenticationFailed("Invalid token. Missing user id or role.")
    try:
        role = Role(str(role).lower())
    except ValueError as e:
        raise AuthenticationFailed("Invalid token. Unknown role.", internal_error=e) from e

    company_name = claims.get("company_name") or claims.get("companyName")
    return Principal(id=str(user_id), role=role, tenant_key=company_name)


def authenticate(
    authorization: Optional[str],
    api_key: Optional[str],
    settings: TenantServiceSettings,
) -> Principal:
    """
    Authenticate a request from its credential headers.

    Args:
        authorization: Value of the Authorization header.
        api_key: Value of the X-API-Key header.
        settings: Settings holding SERVICE_API_KEYS and the JWT configuration.

    Returns:
        The verified Principal.

    Raises:
        AuthenticationFailed: If no credentials were supplied or they are invalid.
    """
    if api_key:
        if _is_service_key(api_key, settings):
            return Principal(id="service", role=Role.SERVICE)
        logger.warning("Rejected request with invalid API key")
        raise AuthenticationFailed("Invalid API key.")

    token = _bearer_token(authorization)
    if token is None:
        raise AuthenticationFailed("Access token required.")

    if _is_service_key(token, settings):
        return Principal(id="service", role=Role.SERVICE)

    return principal_from_claims(decode_access_token(token, settings))


def require_admin(principal: Principal) -> Principal:
    """Raise InsufficientRole unless the principal is an admin."""
    if not principal.is_admin:
        raise InsufficientRole("Access denied. Admin role required.")
    return principal


def require_manager(principal: Principal) -> Principal:
    """Raise InsufficientRole unless the principal has manager-equivalent privilege."""
    if principal.role not in MANAGER_ROLES:
        raise InsufficientRole("Access denied. Manager role required.")
    return principal
