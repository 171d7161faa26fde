"""
Tests for the tenant schema bootstrap.
"""

import asyncio

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from common.database.base import Base
from common.database.tenant_schema import SchemaBootstrapper, build_schema_statements
from common.exceptions import PoolUnavailable, SchemaBootstrapFailed
from common.models import TENANT_SCHEMA_VERSION

TENANT_TABLES = {
    "user_auth",
    "employees",
    "employee_stats",
    "call_quality",
    "call_training",
    "dialogues",
    "overall_data",
    "department_analytics",
    "department_reports",
    "uploaded_files",
    "verification_codes",
    "tenant_schema_info",
}


def _compile(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


class TestBuildSchemaStatements:
    """Tests for the DDL applied to every tenant database."""

    def test_covers_every_tenant_table(self):
        created = {
            s.element.name for s in build_schema_statements() if isinstance(s, CreateTable)
        }
        assert created == TENANT_TABLES
        assert created == set(Base.metadata.tables)

    def test_every_statement_is_idempotent(self):
        for statement in build_schema_statements():
            sql = _compile(statement)
            if isinstance(statement, CreateTable):
                assert sql.strip().startswith("CREATE TABLE IF NOT EXISTS")
            else:
                assert "CREATE INDEX IF NOT EXISTS" in sql or "CREATE UNIQUE INDEX IF NOT EXISTS" in sql

    def test_tables_precede_their_dependents(self):
        order = [
            s.element.name for s in build_schema_statements() if isinstance(s, CreateTable)
        ]
        assert order.index("user_auth") < order.index("employees")
        for dependent in ("employee_stats", "call_quality", "call_training", "dialogues"):
            assert order.index("employees") < order.index(dependent)

    def test_indexes_follow_their_table(self):
        seen_tables = set()
        for statement in build_schema_statements():
            if isinstance(statement, CreateTable):
                seen_tables.add(statement.element.name)
            elif isinstance(statement, CreateIndex):
                assert statement.element.table.name in seen_tables

    def test_date_columns_keep_their_name(self):
        sql = _compile(CreateTable(Base.metadata.tables["call_quality"]))
        assert "date DATE NOT NULL" in sql.replace('"date"', "date")


class TestSchemaBootstrapper:
    """Tests for SchemaBootstrapper against the in-memory server."""

    @pytest.mark.asyncio
    async def test_bootstrap_applies_schema_and_marker(self, fake_postgres, bootstrapper):
        fake_database = fake_postgres.add_database("logos_ai_acme")

        await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")

        assert fake_database.tables == TENANT_TABLES
        assert fake_database.marker_versions == {TENANT_SCHEMA_VERSION}
        assert await bootstrapper.is_bootstrapped("logos_ai_acme")

    @pytest.mark.asyncio
    async def test_bootstrap_is_rerunnable(self, fake_postgres, bootstrapper):
        fake_database = fake_postgres.add_database("logos_ai_acme")

        await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")
        indexes = set(fake_database.indexes)
        await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")

        assert fake_database.tables == TENANT_TABLES
        assert fake_database.indexes == indexes

    @pytest.mark.asyncio
    async def test_fresh_database_is_not_bootstrapped(self, fake_postgres, bootstrapper):
        fake_postgres.add_database("logos_ai_acme")

        assert not await bootstrapper.is_bootstrapped("logos_ai_acme")

    @pytest.mark.asyncio
    async def test_other_schema_version_is_not_bootstrapped(self, fake_postgres, bootstrapper):
        fake_postgres.add_database("logos_ai_acme")
        await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")

        newer = SchemaBootstrapper(fake_postgres.engine_for, schema_version="2")

        assert not await newer.is_bootstrapped("logos_ai_acme")

    @pytest.mark.asyncio
    async def test_failure_rolls_back_and_raises(self, fake_postgres, bootstrapper):
        fake_database = fake_postgres.add_database("logos_ai_acme")
        fake_postgres.fail_ddl_for.add("call_quality")

        with pytest.raises(SchemaBootstrapFailed) as exc_info:
            await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")

        assert exc_info.value.status_code == 500
        assert exc_info.value.internal_error is not None
        assert fake_database.tables == set()
        assert fake_database.marker_versions == set()

    @pytest.mark.asyncio
    async def test_bootstrap_releases_its_connection(self, fake_postgres, bootstrapper):
        fake_postgres.add_database("logos_ai_acme")
        fake_postgres.fail_ddl_for.add("employees")

        with pytest.raises(SchemaBootstrapFailed):
            await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")
        fake_postgres.fail_ddl_for.clear()
        await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")
        await bootstrapper.is_bootstrapped("logos_ai_acme")

        assert fake_postgres.engines
        assert all(engine.disposed for engine in fake_postgres.engines)

    @pytest.mark.asyncio
    async def test_unreachable_database(self, fake_postgres, bootstrapper):
        fake_postgres.add_database("logos_ai_acme")
        fake_postgres.unreachable.add("logos_ai_acme")

        with pytest.raises(PoolUnavailable):
            await bootstrapper.is_bootstrapped("logos_ai_acme")
        with pytest.raises(SchemaBootstrapFailed):
            await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")

    @pytest.mark.asyncio
    async def test_bootstrap_takes_advisory_lock_before_ddl(self, fake_postgres, bootstrapper):
        fake_database = fake_postgres.add_database("logos_ai_acme")

        await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")

        assert fake_database.statement_log[0] == "pg_advisory_xact_lock"
        assert fake_database.statement_log[1].startswith("CREATE TABLE")

    @pytest.mark.asyncio
    async def test_rerun_skips_ddl_once_marker_exists(self, fake_postgres, bootstrapper):
        fake_database = fake_postgres.add_database("logos_ai_acme")
        await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")
        fake_database.statement_log.clear()

        await bootstrapper.bootstrap("logos_ai_acme", tenant_key="acme")

        assert fake_database.statement_log == ["pg_advisory_xact_lock"]

    @pytest.mark.asyncio
    async def test_concurrent_bootstrap_from_two_processes(self, fake_postgres):
        fake_database = fake_postgres.add_database("logos_ai_acme")
        fake_postgres.latency = 0.001
        first = SchemaBootstrapper(fake_postgres.engine_for)
        second = SchemaBootstrapper(fake_postgres.engine_for)

        await asyncio.gather(
            first.bootstrap("logos_ai_acme", tenant_key="acme"),
            second.bootstrap("logos_ai_acme", tenant_key="acme"),
        )

        assert fake_database.statement_log.count("CREATE TABLE user_auth") == 1
        assert fake_database.statement_log.count("pg_advisory_xact_lock") == 2
        assert fake_database.marker_versions == {TENANT_SCHEMA_VERSION}
