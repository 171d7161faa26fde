"""
Centralized configuration management for all backend services.

This module provides a unified interface for accessing service-specific configuration
settings. It automatically selects the appropriate settings class based on the service
name, ensuring each service gets its correct configuration.

The configuration system uses Pydantic Settings, which automatically loads values from:
    1. Environment variables (highest priority)
    2. .env file in the project root
    3. Default values defined in the settings classes

Service-Specific Settings:
    - TenantServiceSettings: Configuration for tenant-service and the admin CLI
    - BaseServiceSettings: Base configuration shared by all services

Example:
    ```python
    from common.config import get_settings

    settings = get_settings("tenant-service")
    print(settings.SERVICE_NAME)  # "tenant-service"
    print(settings.TENANT_DATABASE_PREFIX)  # "logos_ai"
    ```
"""

from common.config.settings import (
    BaseServiceSettings,
    TenantServiceSettings,
)


def get_settings(service_name: str | None = None) -> BaseServiceSettings:
    """
    Get settings instance for the specified service.

    This function returns the appropriate settings class based on the service name.
    It performs fuzzy matching to handle variations in service naming (e.g., "tenant"
    matches "tenant-service").

    Args:
        service_name: Name of the service to get settings for. Can be:
            - "tenant-service" or any string containing "tenant" or "company"
            - None or any other value returns BaseServiceSettings

    Returns:
        Instance of the appropriate settings class.

    Note:
        - Settings are loaded from environment variables and .env file
        - Each call returns a new instance (settings are not cached)
        - Service name matching is case-insensitive
    """
    if service_name:
        service_lower = service_name.lower()
        if "tenant" in service_lower or "company" in service_lower:
            return TenantServiceSettings()
    # Default to base settings
    return BaseServiceSettings()


__all__ = [
    "BaseServiceSettings",
    "TenantServiceSettings",
    "get_settings",
]
