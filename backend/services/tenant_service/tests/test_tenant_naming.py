"""
Tests for company name canonicalization and tenant database naming.
"""

import pytest

from common.database.tenant_naming import (
    canonicalize_tenant_name,
    get_tenant_database_name,
    get_tenant_key_from_database_name,
    tenant_database_name_pattern,
    validate_tenant_name,
)
from common.exceptions import InvalidTenantName


class TestCanonicalizeTenantName:
    """Tests for canonicalize_tenant_name."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Acme Corp", "acme_corp"),
            ("Acme Corp!", "acme_corp"),
            ("acme_corp", "acme_corp"),
            ("  ACME---Corp  ", "acme_corp"),
            ("__Globex__", "globex"),
            ("Café Société", "caf_soci_t"),
            ("Initech 2024", "initech_2024"),
            ("!!!", ""),
            ("", ""),
        ],
    )
    def test_canonical_form(self, raw, expected):
        assert canonicalize_tenant_name(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["Acme Corp!", "a__b", "_x_", "Mixed.Case/Name", "ümlaut", "", "___", "a" * 80],
    )
    def test_is_idempotent(self, raw):
        once = canonicalize_tenant_name(raw)
        assert canonicalize_tenant_name(once) == once

    def test_distinct_names_collide_on_same_key(self):
        # Both spellings address the same company database
        assert canonicalize_tenant_name("Acme Corp!") == canonicalize_tenant_name("acme_corp")

    def test_output_alphabet(self):
        key = canonicalize_tenant_name("Hello, World! -- 123 ***")
        assert key == "hello_world_123"
        assert set(key) <= set("abcdefghijklmnopqrstuvwxyz0123456789_")
        assert "__" not in key


class TestValidateTenantName:
    """Tests for validate_tenant_name."""

    def test_returns_canonical_key(self):
        assert validate_tenant_name("Acme Corp") == "acme_corp"

    def test_accepts_canonical_key(self):
        assert validate_tenant_name("acme_corp") == "acme_corp"

    @pytest.mark.parametrize("raw", ["", "   ", "!!!", "___"])
    def test_rejects_empty_canonical_form(self, raw):
        with pytest.raises(InvalidTenantName):
            validate_tenant_name(raw)

    def test_rejects_missing_name(self):
        with pytest.raises(InvalidTenantName):
            validate_tenant_name(None)

    def test_rejects_non_string(self):
        with pytest.raises(InvalidTenantName):
            validate_tenant_name(123)

    def test_length_is_checked_after_canonicalization(self):
        # "A!" canonicalizes to "a", below the 2 character minimum
        with pytest.raises(InvalidTenantName):
            validate_tenant_name("A!")
        assert validate_tenant_name("AB!") == "ab"

    def test_rejects_too_long(self):
        assert validate_tenant_name("a" * 50) == "a" * 50
        with pytest.raises(InvalidTenantName):
            validate_tenant_name("a" * 51)

    def test_custom_limits(self):
        assert validate_tenant_name("x", min_length=1, max_length=5) == "x"
        with pytest.raises(InvalidTenantName):
            validate_tenant_name("abcdef", min_length=1, max_length=5)

    def test_error_is_client_error(self):
        with pytest.raises(InvalidTenantName) as exc_info:
            validate_tenant_name("")
        assert exc_info.value.status_code == 400
        assert exc_info.value.is_client_error
        assert not exc_info.value.retryable


class TestDatabaseNaming:
    """Tests for tenant database name helpers."""

    def test_database_name(self):
        assert get_tenant_database_name("acme_corp") == "logos_ai_acme_corp"

    def test_database_name_custom_prefix(self):
        assert get_tenant_database_name("acme_corp", prefix="staging") == "staging_acme_corp"

    def test_key_from_database_name(self):
        assert get_tenant_key_from_database_name("logos_ai_acme_corp") == "acme_corp"

    @pytest.mark.parametrize("name", ["postgres", "logos_ai_", "logos_aiacme", "other_acme"])
    def test_key_from_foreign_database_name(self, name):
        assert get_tenant_key_from_database_name(name) is None

    def test_like_pattern_escapes_underscores(self):
        assert tenant_database_name_pattern("logos_ai") == "logos\\_ai\\_%"
