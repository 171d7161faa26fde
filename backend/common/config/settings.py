"""
Centralized configuration management for all backend services.

This module defines Pydantic Settings classes for managing configuration across
all microservices. It provides a hierarchical settings system with base settings
shared by all services and service-specific overrides.

Configuration Loading:
    Settings are loaded in the following priority order (highest to lowest):
    1. Environment variables
    2. .env file in the project root
    3. Default values defined in the classes

Validation:
    All settings are validated using Pydantic validators to ensure:
    - Type correctness
    - Value constraints (e.g., non-negative pool sizes, sane name lengths)
    - Format requirements (e.g., comma-separated list parsing)

Service Settings Hierarchy:
    BaseServiceSettings (base class)
    └── TenantServiceSettings

Example:
    ```python
    from common.config.settings import TenantServiceSettings

    settings = TenantServiceSettings()
    print(settings.SERVICE_NAME)  # "tenant-service"
    print(settings.TENANT_DATABASE_PREFIX)  # "logos_ai"
    print(settings.DATABASE_POOL_SIZE)  # 10 (from base)
    ```

Environment Variables:
    All settings can be overridden via environment variables. For example:
    - POSTGRES_HOST=db.internal
    - TENANT_DATABASE_PREFIX=logos_ai
    - LOG_LEVEL=DEBUG
    - SERVICE_API_KEYS=key-one,key-two
"""

import re
from typing import Any

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings

# Postgres limits identifiers to 63 bytes; prefix + "_" + key must fit.
MAX_DATABASE_NAME_LENGTH = 63
_PREFIX_PATTERN = re.compile(r"[a-z0-9_]+")


def _split_comma_separated(v: Any) -> list[str]:
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    if isinstance(v, list):
        return v
    return []


class BaseServiceSettings(BaseSettings):
    """
    Base settings class providing common configuration for all services.

    This class defines all shared configuration options used across microservices,
    including service metadata, API configuration, database server settings, and
    logging. Service-specific settings classes inherit from this base class and
    override or extend these settings as needed.

    Attributes:
        SERVICE_NAME (str): Name identifier for the service. Default: "base-service"
        SERVICE_VERSION (str): Version string for the service. Default: "0.0.1"
        PORT (int): Port number the service listens on. Default: 8000

        ENVIRONMENT (str): Deployment environment. Values: "DEV" or "PROD". Default: "DEV"
        DEBUG (bool): Enable debug mode. Default: False
        LOG_LEVEL (str): Logging level. Default: "INFO"

        API_V1_STR (str): API version prefix for routes. Default: "/api/v1"
        CORS_ORIGINS (list[str]): Allowed CORS origins, comma-separated or list.

        POSTGRES_HOST / POSTGRES_PORT / POSTGRES_USER / POSTGRES_PASSWORD:
            Connection parameters of the single database server hosting every
            tenant database.
        POSTGRES_MASTER_DATABASE (str): Catalog database used for CREATE/DROP
            DATABASE and existence checks. Default: "postgres"

        DATABASE_POOL_SIZE (int): Connections kept per tenant pool. Default: 10
        DATABASE_MAX_OVERFLOW (int): Overflow connections per tenant pool. Default: 5
        DATABASE_POOL_TIMEOUT (int): Seconds to wait for a pooled connection. Default: 30
        DATABASE_POOL_RECYCLE (int): Seconds before a connection is recycled. Default: 3600
        DATABASE_CONNECT_TIMEOUT (int): Seconds allowed to open a connection. Default: 10
        DATABASE_STATEMENT_TIMEOUT_MS (int): Server-side statement timeout. Default: 30000
        MASTER_POOL_SIZE (int): Fixed size of the catalog connection pool. Default: 2

    Note:
        - CORS_ORIGINS can be set as a comma-separated string or a list
        - All integer pool fields are validated to be non-negative
    """

    # Service Information (defaults)
    SERVICE_NAME: str = "base-service"
    SERVICE_VERSION: str = "0.0.1"
    PORT: int = 8000

    # Global Configuration
    ENVIRONMENT: str = "DEV"  # Can be "DEV" or "PROD"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # API Configuration
    API_V1_STR: str = "/api/v1"

    # CORS Configuration
    CORS_ORIGINS: Any = ""

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> list[str]:
        """
        Assemble CORS origins from string or list format.

        Accepts either a comma-separated string
        ("http://localhost:3000,https://example.com") or a list of strings.
        Whitespace is stripped and empty entries are dropped; any other type
        yields an empty list.
        """
        return _split_comma_separated(v)

    # Database Server Configuration
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_MASTER_DATABASE: str = "postgres"

    # Connection Pool Configuration
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 5
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_POOL_RECYCLE: int = 3600
    DATABASE_CONNECT_TIMEOUT: int = 10
    DATABASE_STATEMENT_TIMEOUT_MS: int = 30000
    MASTER_POOL_SIZE: int = 2

    @field_validator(
        "DATABASE_POOL_SIZE",
        "DATABASE_MAX_OVERFLOW",
        "DATABASE_POOL_TIMEOUT",
        "DATABASE_POOL_RECYCLE",
        "DATABASE_CONNECT_TIMEOUT",
        "DATABASE_STATEMENT_TIMEOUT_MS",
        "MASTER_POOL_SIZE",
        mode="before",
    )
    @classmethod
    def validate_positive_int(cls, v: Any, info: ValidationInfo) -> int | None:
        """
        Validate that database pool configuration fields are non-negative integers.

        Handles type conversion from strings (common when loading from
        environment variables) and validates the value range.

        Args:
            v: Input value to validate. Can be int, str, or None.
            info: Pydantic ValidationInfo object containing field metadata.

        Returns:
            Validated integer value, or None if input is None.

        Raises:
            ValueError: If the value cannot be converted to an integer or is negative.
        """
        if v is None:
            return None
        try:
            int_val = int(v)
            if int_val < 0:
                msg = f"{info.field_name} must be a positive integer"
                raise ValueError(msg)
            return int_val
        except (ValueError, TypeError) as e:
            msg = f"{info.field_name} must be a valid positive integer, got: {v}"
            raise ValueError(
                msg
            ) from e

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


class TenantServiceSettings(BaseServiceSettings):
    """
    Settings configuration for the tenant database service.

    This class extends BaseServiceSettings with everything the tenant database
    lifecycle needs: the naming convention for tenant databases, provisioning
    bounds, and the credentials used to authenticate principals.

    Inherited Attributes:
        All attributes from BaseServiceSettings are available with these overrides:
        - SERVICE_NAME: "tenant-service"
        - PORT: 8004

    Additional Attributes:
        TENANT_DATABASE_PREFIX (str): Prefix of every tenant database name.
            Tenant databases are named "{prefix}_{canonical_key}". Default: "logos_ai"
        TENANT_NAME_MIN_LENGTH (int): Minimum canonical key length. Default: 2
        TENANT_NAME_MAX_LENGTH (int): Maximum canonical key length. Default: 50
        PROVISIONING_TIMEOUT_SECONDS (float): Upper bound for one create+bootstrap
            attempt. Default: 30
        TENANT_EXISTS_CACHE_TTL_SECONDS (float): How long a tenant verified as
            ready skips the catalog round trip. 0 disables the cache. Default: 60
        JWT_SECRET (str): Shared secret used to verify bearer tokens.
        JWT_ALGORITHM (str): Signature algorithm of bearer tokens. Default: "HS256"
        SERVICE_API_KEYS (list[str]): API keys accepted for machine clients,
            comma-separated or list.

    Example:
        ```python
        from common.config.settings import TenantServiceSettings

        settings = TenantServiceSettings(TENANT_DATABASE_PREFIX="acme_tenants")
        print(settings.TENANT_DATABASE_PREFIX)  # "acme_tenants"
        ```

    Note:
        - JWT_SECRET and SERVICE_API_KEYS should come from a secrets manager
          in production, never from the .env file checked into the repository
    """

    SERVICE_NAME: str = "tenant-service"
    SERVICE_VERSION: str = "0.1.0"
    PORT: int = 8004

    # Tenant database naming
    TENANT_DATABASE_PREFIX: str = "logos_ai"
    TENANT_NAME_MIN_LENGTH: int = 2
    TENANT_NAME_MAX_LENGTH: int = 50

    # Provisioning
    PROVISIONING_TIMEOUT_SECONDS: float = 30.0
    TENANT_EXISTS_CACHE_TTL_SECONDS: float = 60.0

    # Authentication
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    SERVICE_API_KEYS: Any = ""

    @field_validator("SERVICE_API_KEYS", mode="before")
    @classmethod
    def assemble_api_keys(cls, v: Any) -> list[str]:
        """Parse API keys from a comma-separated string or a list."""
        return _split_comma_separated(v)

    @field_validator("TENANT_DATABASE_PREFIX")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """
        Validate the tenant database prefix.

        The prefix is interpolated into CREATE/DROP DATABASE statements, so it
        is restricted to lowercase letters, digits and underscores.

        Raises:
            ValueError: If the prefix is empty or contains other characters.
        """
        if not _PREFIX_PATTERN.fullmatch(v):
            msg = "TENANT_DATABASE_PREFIX must contain only [a-z0-9_]"
            raise ValueError(msg)
        return v

    @field_validator("TENANT_NAME_MAX_LENGTH")
    @classmethod
    def validate_name_length(cls, v: int, info: ValidationInfo) -> int:
        """
        Validate that the longest tenant database name fits a Postgres identifier.

        Raises:
            ValueError: If the limit is below 1 or the resulting database name
                could exceed MAX_DATABASE_NAME_LENGTH.
        """
        if v < 1:
            msg = f"{info.field_name} must be at least 1"
            raise ValueError(msg)
        prefix = info.data.get("TENANT_DATABASE_PREFIX", "")
        if len(prefix) + 1 + v > MAX_DATABASE_NAME_LENGTH:
            msg = (
                f"{info.field_name}={v} with prefix '{prefix}' exceeds "
                f"{MAX_DATABASE_NAME_LENGTH} characters"
            )
            raise ValueError(msg)
        return v
