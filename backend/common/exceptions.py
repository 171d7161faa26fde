"""
Standardized error handling for tenant database operations and API responses.

This module defines the error taxonomy of the tenant database lifecycle. The
app factory turns these errors into safe API responses. Every error carries a
user-facing message and an HTTP status code, while the original exception is
kept only for logging so internal details (SQL, hostnames, stack traces) never
reach API clients.

Error Taxonomy:
    Client errors (never retried automatically):
        - InvalidTenantName (400): name canonicalizes to empty or violates length policy
        - TenantRequired (400): service principal did not name a target tenant
        - AuthenticationFailed (401): missing or invalid credentials
        - CrossTenantAccessDenied (403): non-admin principal targeted another tenant
        - InsufficientRole (403): principal role does not allow the operation
        - TenantNotFound (404): tenant database does not exist

    Server errors:
        - DatabaseCreateFailed (500): CREATE DATABASE failed for a reason other
          than "already exists"
        - DatabaseDropFailed (500): terminating connections or DROP DATABASE failed
        - SchemaBootstrapFailed (500): DDL application failed, tenant not ready
        - PoolUnavailable (503, retryable): no connection could be established
        - ProvisioningTimeout (503, retryable): create+bootstrap exceeded its bound

Example:
    ```python
    from common.exceptions import CrossTenantAccessDenied, TenantError

    try:
        context = await guard.authorize(principal, requested_tenant="globex")
    except TenantError as e:
        print(e.status_code, e.message, e.retryable)
    ```
"""

# HTTP Status Code Constants
HTTP_400_BAD_REQUEST = 400
HTTP_401_UNAUTHORIZED = 401
HTTP_403_FORBIDDEN = 403
HTTP_404_NOT_FOUND = 404
HTTP_500_INTERNAL_SERVER_ERROR = 500
HTTP_503_SERVICE_UNAVAILABLE = 503


class APIError(Exception):
    """
    Base exception class for API errors with user-friendly messages.

    This exception class is designed for use in API endpoints where you need to
    raise errors that will be converted to HTTP responses. It separates
    user-facing messages from internal error details for security compliance.

    Attributes:
        message (str): User-friendly error message that can be safely exposed to clients.
        status_code (int): HTTP status code to return (default: 500).
        internal_error (Exception | None): The original exception that caused this error,
            stored for logging purposes but not exposed to clients.

    Note:
        - The message should never contain sensitive information
        - Internal errors are logged but not included in API responses
        - The FastAPI app factory registers a handler for this class
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        internal_error: Exception | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.internal_error = internal_error
        super().__init__(self.message)

    @property
    def is_client_error(self) -> bool:
        """True for 4xx errors, which callers must not retry automatically."""
        return self.status_code < HTTP_500_INTERNAL_SERVER_ERROR


class TenantError(APIError):
    """
    Base class for every tenant lifecycle error.

    Subclasses fix the status code and provide a default message, so they can
    be raised with no arguments or with a more specific message.
    """

    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Tenant database operation failed."
    retryable = False

    def __init__(
        self,
        message: str | None = None,
        internal_error: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message or self.default_message,
            status_code=type(self).status_code,
            internal_error=internal_error,
        )


class InvalidTenantName(TenantError):
    status_code = HTTP_400_BAD_REQUEST
    default_message = "Company name is invalid."


class TenantRequired(TenantError):
    status_code = HTTP_400_BAD_REQUEST
    default_message = "Company name is required."


class AuthenticationFailed(TenantError):
    status_code = HTTP_401_UNAUTHORIZED
    default_message = "Authentication failed. Please check your credentials."


class CrossTenantAccessDenied(TenantError):
    status_code = HTTP_403_FORBIDDEN
    default_message = "Access denied: You can only access your own company data."


class InsufficientRole(TenantError):
    status_code = HTTP_403_FORBIDDEN
    default_message = "Access denied. You don't have permission to perform this action."


class TenantNotFound(TenantError):
    status_code = HTTP_404_NOT_FOUND
    default_message = "Company database does not exist."


class DatabaseCreateFailed(TenantError):
    default_message = "Failed to create company database."


class DatabaseDropFailed(TenantError):
    default_message = "Failed to delete company database."


class SchemaBootstrapFailed(TenantError):
    default_message = "Failed to initialize company database."


class PoolUnavailable(TenantError):
    status_code = HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Company database is temporarily unavailable. Please try again later."
    retryable = True


class ProvisioningTimeout(TenantError):
    status_code = HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Company database provisioning timed out. Please try again later."
    retryable = True
