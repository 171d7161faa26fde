"""
Pytest configuration and fixtures for tenant service tests.

The tests run the real catalog, bootstrapper, registry and provisioner against
FakePostgres, an in-memory stand-in for a PostgreSQL server. FakePostgres hands
out FakeEngine objects that understand the catalog SQL issued by TenantCatalog
and record the DDL issued by SchemaBootstrapper, so no database server is needed.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import os
import re
from types import SimpleNamespace
from typing import Any

import jwt
import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.schema import CreateIndex, CreateTable
from sqlalchemy.sql.dml import Insert

# Set test environment variables before importing modules
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_PORT", "5432")
os.environ.setdefault("POSTGRES_USER", "postgres")
os.environ.setdefault("POSTGRES_PASSWORD", "postgres")
os.environ.setdefault("ENVIRONMENT", "DEV")

from common.config.settings import TenantServiceSettings  # noqa: E402
from common.database import (  # noqa: E402
    SchemaBootstrapper,
    TenantCatalog,
    TenantDatabaseManager,
    TenantPoolRegistry,
    get_tenant_database_name,
)

TEST_JWT_SECRET = "test-secret-key-with-at-least-32-bytes!"
TEST_API_KEY = "svc-test-key"

_CREATE_DATABASE = re.compile(r'CREATE DATABASE "([^"]+)"')
_DROP_DATABASE = re.compile(r'DROP DATABASE IF EXISTS "([^"]+)"')
_FROM_TABLE = re.compile(r"FROM (\w+)")

_UNSET = object()


class FakeDriverError(Exception):
    """Driver-level error carrying a SQLSTATE, like asyncpg's exceptions."""

    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


class FakeResult:
    def __init__(self, rows: list[Any] | None = None, scalar: Any = _UNSET) -> None:
        self._rows = rows or []
        self._scalar = scalar

    def scalar(self) -> Any:
        if self._scalar is not _UNSET:
            return self._scalar
        return self._rows[0][0] if self._rows else None

    def first(self) -> Any:
        return self._rows[0] if self._rows else None

    def one(self) -> Any:
        assert len(self._rows) == 1
        return self._rows[0]

    def fetchall(self) -> list[Any]:
        return list(self._rows)

    def all(self) -> list[Any]:
        return list(self._rows)


@dataclass
class FakeDatabase:
    name: str
    tables: set[str] = field(default_factory=set)
    indexes: set[str] = field(default_factory=set)
    marker_versions: set[str] = field(default_factory=set)
    users: list[str] = field(default_factory=list)
    size: int = 7_627_264
    statement_log: list[str] = field(default_factory=list)


class FakeConnection:
    def __init__(self, engine: "FakeEngine") -> None:
        self.engine = engine
        self.server = engine.server
        self.held_locks: list[asyncio.Lock] = []

    async def execute(self, statement: Any, params: dict[str, Any] | None = None) -> FakeResult:
        await asyncio.sleep(self.server.latency)
        if self.engine.is_master:
            return self._execute_catalog(str(statement), params or {})
        database = self.server.databases.get(self.engine.database_name)
        if database is None:
            raise OperationalError(
                str(statement), params, FakeDriverError("terminating connection", "57P01")
            )
        if "pg_advisory_xact_lock" in str(statement):
            database.statement_log.append("pg_advisory_xact_lock")
            lock = self.server.advisory_locks.setdefault(params["database_name"], asyncio.Lock())
            await lock.acquire()
            self.held_locks.append(lock)
            return FakeResult()
        return self._execute_tenant(database, statement, params or {})

    def _execute_catalog(self, sql: str, params: dict[str, Any]) -> FakeResult:
        server = self.server
        server.catalog_statements.append(sql)

        match = _CREATE_DATABASE.search(sql)
        if match:
            server.create_database_calls += 1
            name = match.group(1)
            if server.fail_create_database is not None:
                raise server.fail_create_database
            if name in server.databases:
                raise ProgrammingError(
                    sql, params, FakeDriverError(f'database "{name}" already exists', "42P04")
                )
            server.databases[name] = FakeDatabase(name)
            return FakeResult()

        match = _DROP_DATABASE.search(sql)
        if match:
            name = match.group(1)
            if server.fail_drop_database is not None:
                raise server.fail_drop_database
            server.databases.pop(name, None)
            server.dropped.append(name)
            return FakeResult()

        if "pg_terminate_backend" in sql:
            name = params["database_name"]
            victims = [e for e in server.open_engines(name) if e.active_connections]
            server.terminated.append(name)
            return FakeResult(rows=[(True,) for _ in victims])

        if "datistemplate" in sql:
            prefix = params["pattern"].rstrip("%").replace("\\_", "_").replace("\\%", "%")
            include_size = "pg_database_size" in sql
            rows = [
                SimpleNamespace(
                    database_name=name,
                    size_on_disk=server.databases[name].size if include_size else None,
                )
                for name in sorted(server.databases)
                if name.startswith(prefix)
            ]
            return FakeResult(rows=rows)

        if "FROM pg_database WHERE datname" in sql:
            exists = params["database_name"] in server.databases
            return FakeResult(rows=[(1,)] if exists else [])

        if "SELECT 1" in sql:
            return FakeResult(scalar=1)

        raise AssertionError(f"Unexpected catalog SQL: {sql}")

    def _execute_tenant(
        self, database: FakeDatabase, statement: Any, params: dict[str, Any]
    ) -> FakeResult:
        if isinstance(statement, CreateTable):
            name = statement.element.name
            if name in self.server.fail_ddl_for:
                raise ProgrammingError(
                    f"CREATE TABLE {name}", {}, FakeDriverError("permission denied", "42501")
                )
            for foreign_key in statement.element.foreign_keys:
                assert foreign_key.column.table.name in database.tables, (
                    f"{name} created before {foreign_key.column.table.name}"
                )
            database.tables.add(name)
            database.statement_log.append(f"CREATE TABLE {name}")
            return FakeResult()

        if isinstance(statement, CreateIndex):
            assert statement.element.table.name in database.tables
            database.indexes.add(statement.element.name)
            return FakeResult()

        if isinstance(statement, Insert):
            compiled = statement.compile(dialect=postgresql.dialect())
            database.marker_versions.add(compiled.params["schema_version"])
            return FakeResult()

        sql = str(statement)
        if "information_schema.tables" in sql:
            return FakeResult(scalar=params["table_name"] in database.tables)

        if "count(" in sql.lower() and "user_auth" in sql:
            self._require_table(database, "user_auth", sql)
            return FakeResult(
                rows=[
                    SimpleNamespace(
                        total_users=len(database.users),
                        employees=database.users.count("employee"),
                        managers=database.users.count("manager"),
                    )
                ]
            )

        if "FROM tenant_schema_info" in sql:
            self._require_table(database, "tenant_schema_info", sql)
            version = next(iter(statement.compile().params.values()))
            return FakeResult(scalar=version if version in database.marker_versions else None)

        match = _FROM_TABLE.search(sql)
        if match:
            self._require_table(database, match.group(1), sql)
            return FakeResult(rows=[])

        if "SELECT 1" in sql:
            return FakeResult(scalar=1)

        raise AssertionError(f"Unexpected tenant SQL: {sql}")

    @staticmethod
    def _require_table(database: FakeDatabase, table: str, sql: str) -> None:
        if table not in database.tables:
            raise ProgrammingError(
                sql, {}, FakeDriverError(f'relation "{table}" does not exist', "42P01")
            )


class FakeEngine:
    def __init__(self, server: "FakePostgres", database_name: str, is_master: bool = False) -> None:
        self.server = server
        self.database_name = database_name
        self.is_master = is_master
        self.disposed = False
        self.dispose_calls = 0
        self.active_connections = 0

    @asynccontextmanager
    async def _open(self, transactional: bool):
        self.server.check_reachable(self)
        self.disposed = False
        database = self.server.databases.get(self.database_name)
        snapshot = None
        if transactional and database is not None:
            snapshot = (set(database.tables), set(database.indexes), set(database.marker_versions))
        self.active_connections += 1
        connection = FakeConnection(self)
        try:
            yield connection
        except Exception:
            if snapshot is not None:
                database.tables, database.indexes, database.marker_versions = snapshot
            raise
        finally:
            self.active_connections -= 1
            for lock in connection.held_locks:
                lock.release()

    def connect(self):
        return self._open(transactional=False)

    def begin(self):
        return self._open(transactional=True)

    async def dispose(self) -> None:
        self.disposed = True
        self.dispose_calls += 1


class FakePostgres:
    """In-memory PostgreSQL server: a catalog of databases and their tables."""

    def __init__(self) -> None:
        self.databases: dict[str, FakeDatabase] = {}
        self.engines: list[FakeEngine] = []
        self.catalog_statements: list[str] = []
        self.create_database_calls = 0
        self.dropped: list[str] = []
        self.terminated: list[str] = []
        self.fail_ddl_for: set[str] = set()
        self.fail_create_database: Exception | None = None
        self.fail_drop_database: Exception | None = None
        self.unreachable: set[str] = set()
        self.latency = 0.0
        self.master: FakeEngine | None = None
        self.advisory_locks: dict[str, asyncio.Lock] = {}

    def master_engine(self) -> FakeEngine:
        self.master = FakeEngine(self, "postgres", is_master=True)
        return self.master

    def add_database(self, name: str) -> FakeDatabase:
        self.databases[name] = FakeDatabase(name)
        return self.databases[name]

    def engine_for(self, database_name: str) -> FakeEngine:
        engine = FakeEngine(self, database_name)
        self.engines.append(engine)
        return engine

    def open_engines(self, database_name: str | None = None) -> list[FakeEngine]:
        return [
            engine
            for engine in self.engines
            if not engine.disposed
            and (database_name is None or engine.database_name == database_name)
        ]

    def check_reachable(self, engine: FakeEngine) -> None:
        if engine.database_name in self.unreachable:
            raise OperationalError(
                "connect", {}, FakeDriverError("connection refused", "08001")
            )
        if not engine.is_master and engine.database_name not in self.databases:
            raise OperationalError(
                "connect",
                {},
                FakeDriverError(f'database "{engine.database_name}" does not exist', "3D000"),
            )


@pytest.fixture
def tenant_settings() -> TenantServiceSettings:
    """Return tenant service settings for testing."""
    return TenantServiceSettings(
        ENVIRONMENT="DEV",
        TENANT_DATABASE_PREFIX="logos_ai",
        PROVISIONING_TIMEOUT_SECONDS=5.0,
        TENANT_EXISTS_CACHE_TTL_SECONDS=60.0,
        JWT_SECRET=TEST_JWT_SECRET,
        SERVICE_API_KEYS=TEST_API_KEY,
    )


@pytest.fixture
def fake_postgres() -> FakePostgres:
    """Return an empty in-memory database server."""
    return FakePostgres()


@pytest.fixture
def catalog(fake_postgres) -> TenantCatalog:
    return TenantCatalog(fake_postgres.master_engine())


@pytest.fixture
def bootstrapper(fake_postgres) -> SchemaBootstrapper:
    return SchemaBootstrapper(fake_postgres.engine_for)


@pytest.fixture
def registry(fake_postgres, tenant_settings) -> TenantPoolRegistry:
    prefix = tenant_settings.TENANT_DATABASE_PREFIX
    return TenantPoolRegistry(
        engine_factory=fake_postgres.engine_for,
        database_name_for=lambda tenant_key: get_tenant_database_name(tenant_key, prefix),
    )


@pytest.fixture
def manager(tenant_settings, catalog, bootstrapper, registry) -> TenantDatabaseManager:
    """Return a TenantDatabaseManager wired to the in-memory server."""
    return TenantDatabaseManager(tenant_settings, catalog, bootstrapper, registry)


@pytest.fixture
def provisioner(manager):
    return manager.provisioner


def make_token(
    role: str,
    company_name: str | None = None,
    user_id: str = "42",
    secret: str = TEST_JWT_SECRET,
    **claims: Any,
) -> str:
    """Sign a bearer token the way the auth service issues them."""
    payload: dict[str, Any] = {"id": user_id, "role": role, **claims}
    if company_name is not None:
        payload["companyName"] = company_name
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def token_factory():
    return make_token
