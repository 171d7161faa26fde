"""
Tests for request authentication (service API keys and bearer JWTs).
"""

import time

import jwt
import pytest

from common.exceptions import AuthenticationFailed, InsufficientRole
from common.security import Principal, Role, authenticate, require_admin, require_manager


class TestAuthenticate:
    """Tests for authenticate."""

    def test_api_key_header_gives_service_principal(self, tenant_settings):
        api_key = tenant_settings.SERVICE_API_KEYS[0]

        principal = authenticate(authorization=None, api_key=api_key, settings=tenant_settings)

        assert principal.role == Role.SERVICE
        assert principal.tenant_key is None

    def test_api_key_as_bearer_token(self, tenant_settings):
        principal = authenticate(
            authorization=f"Bearer {tenant_settings.SERVICE_API_KEYS[0]}",
            api_key=None,
            settings=tenant_settings,
        )

        assert principal.is_service

    def test_invalid_api_key(self, tenant_settings):
        with pytest.raises(AuthenticationFailed) as exc_info:
            authenticate(authorization=None, api_key="wrong", settings=tenant_settings)

        assert exc_info.value.status_code == 401

    def test_jwt_claims(self, tenant_settings, token_factory):
        token = token_factory("manager", company_name="Acme Corp", user_id="7")

        principal = authenticate(authorization=f"Bearer {token}", api_key=None, settings=tenant_settings)

        assert principal == Principal(id="7", role=Role.MANAGER, tenant_key="acme_corp")

    def test_snake_case_company_claim_and_sub(self, tenant_settings):
        token = jwt.encode(
            {"sub": "u-1", "role": "EMPLOYEE", "company_name": "Globex"},
            tenant_settings.JWT_SECRET,
            algorithm="HS256",
        )

        principal = authenticate(authorization=f"Bearer {token}", api_key=None, settings=tenant_settings)

        assert principal.id == "u-1"
        assert principal.role == Role.EMPLOYEE
        assert principal.tenant_key == "globex"

    def test_admin_without_company(self, tenant_settings, token_factory):
        token = token_factory("admin")

        principal = authenticate(authorization=f"Bearer {token}", api_key=None, settings=tenant_settings)

        assert principal.is_admin
        assert principal.tenant_key is None

    def test_missing_credentials(self, tenant_settings):
        with pytest.raises(AuthenticationFailed):
            authenticate(authorization=None, api_key=None, settings=tenant_settings)

    def test_non_bearer_scheme(self, tenant_settings):
        with pytest.raises(AuthenticationFailed):
            authenticate(authorization="Basic dXNlcjpwYXNz", api_key=None, settings=tenant_settings)

    def test_wrong_signature(self, tenant_settings, token_factory):
        token = token_factory("admin", secret="another-secret-key-with-at-least-32-bytes")

        with pytest.raises(AuthenticationFailed):
            authenticate(authorization=f"Bearer {token}", api_key=None, settings=tenant_settings)

    def test_expired_token(self, tenant_settings, token_factory):
        token = token_factory("manager", company_name="acme", exp=int(time.time()) - 60)

        with pytest.raises(AuthenticationFailed) as exc_info:
            authenticate(authorization=f"Bearer {token}", api_key=None, settings=tenant_settings)

        assert "expired" in exc_info.value.message

    def test_unknown_role(self, tenant_settings, token_factory):
        token = token_factory("superuser", company_name="acme")

        with pytest.raises(AuthenticationFailed):
            authenticate(authorization=f"Bearer {token}", api_key=None, settings=tenant_settings)

    def test_missing_role(self, tenant_settings):
        token = jwt.encode({"id": "1"}, tenant_settings.JWT_SECRET, algorithm="HS256")

        with pytest.raises(AuthenticationFailed):
            authenticate(authorization=f"Bearer {token}", api_key=None, settings=tenant_settings)

    def test_unconfigured_secret_rejects_tokens(self, tenant_settings, token_factory):
        tenant_settings.JWT_SECRET = ""
        token = token_factory("admin")

        with pytest.raises(AuthenticationFailed):
            authenticate(authorization=f"Bearer {token}", api_key=None, settings=tenant_settings)


class TestRoleChecks:
    """Tests for require_admin and require_manager."""

    @pytest.mark.parametrize("role", [Role.MANAGER, Role.ADMIN, Role.SERVICE])
    def test_manager_equivalent_roles(self, role):
        principal = Principal(id="1", role=role, tenant_key="acme")

        assert require_manager(principal) is principal

    def test_employee_is_not_manager(self):
        with pytest.raises(InsufficientRole) as exc_info:
            require_manager(Principal(id="1", role=Role.EMPLOYEE, tenant_key="acme"))

        assert exc_info.value.status_code == 403

    @pytest.mark.parametrize("role", [Role.EMPLOYEE, Role.MANAGER, Role.SERVICE])
    def test_only_admin_is_admin(self, role):
        with pytest.raises(InsufficientRole):
            require_admin(Principal(id="1", role=role, tenant_key="acme"))

    def test_principal_tenant_is_canonicalized(self):
        assert Principal(id="1", role=Role.MANAGER, tenant_key="Acme Corp!").tenant_key == "acme_corp"
        assert Principal(id="1", role=Role.MANAGER, tenant_key="!!!").tenant_key is None
