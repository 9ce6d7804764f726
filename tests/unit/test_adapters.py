"""Tests for the engine adapters' rendered SQL."""

from collections.abc import Callable

import pytest
from sqlalchemy import Engine, text

from respawn import RespawnerOptions
from respawn.adapters import (
    DbAdapter,
    MySqlDbAdapter,
    PostgresDbAdapter,
    SqliteDbAdapter,
    SqlServerDbAdapter,
    get_adapter,
)
from respawn.core.types import Relationship, Table, TemporalTable
from respawn.exceptions import UnsupportedDialectError
from respawn.graph import GraphBuilder

CUSTOMERS = Table("dbo", "Customers")
ORDERS = Table("dbo", "Orders")
A = Table("dbo", "A")
B = Table("dbo", "B")


@pytest.fixture
def acyclic_graph() -> GraphBuilder:
    return GraphBuilder({CUSTOMERS, ORDERS}, {Relationship(CUSTOMERS, ORDERS, "FK_Orders_Customers")})


@pytest.fixture
def cyclic_graph() -> GraphBuilder:
    return GraphBuilder(
        {A, B},
        {Relationship(B, A, "FK_A_B"), Relationship(A, B, "FK_B_A")},
    )


class TestGetAdapter:
    """Tests for adapter lookup."""

    @pytest.mark.parametrize(
        ("name", "adapter_cls"),
        [
            ("postgresql", PostgresDbAdapter),
            ("mssql", SqlServerDbAdapter),
            ("mysql", MySqlDbAdapter),
            ("mariadb", MySqlDbAdapter),
            ("sqlite", SqliteDbAdapter),
        ],
    )
    def test_by_name(self, name: str, adapter_cls: type[DbAdapter]):
        """Backend names map to adapters."""
        adapter = get_adapter(name)
        assert isinstance(adapter, adapter_cls)
        assert adapter.supports(name)

    def test_instance_passthrough(self):
        """An adapter instance is returned unchanged."""
        adapter = PostgresDbAdapter()
        assert get_adapter(adapter) is adapter

    def test_unknown(self):
        """Unknown backends raise UnsupportedDialectError."""
        with pytest.raises(UnsupportedDialectError) as exc_info:
            get_adapter("oracle")

        assert exc_info.value.dialect == "oracle"
        assert "postgresql" in exc_info.value.supported
        assert "oracle" in str(exc_info.value)

    def test_supports_is_strict(self):
        """Adapters refuse other backends."""
        assert not PostgresDbAdapter().supports("mssql")
        assert not SqliteDbAdapter().supports("postgresql")


class TestQuoting:
    """Identifier and literal quoting per dialect."""

    @pytest.mark.parametrize(
        ("adapter", "expected"),
        [
            (PostgresDbAdapter(), '"dbo"."Orders"'),
            (SqlServerDbAdapter(), "[dbo].[Orders]"),
            (MySqlDbAdapter(), "`dbo`.`Orders`"),
            (SqliteDbAdapter(), '"dbo"."Orders"'),
        ],
    )
    def test_qualified_table(self, adapter: DbAdapter, expected: str):
        """Schema and name are quoted separately."""
        assert adapter.quote(ORDERS) == expected

    def test_unqualified_table(self):
        """Tables without schema are quoted by name only."""
        assert SqliteDbAdapter().quote(Table(None, "orders")) == '"orders"'

    def test_embedded_quote_characters(self):
        """Quote characters inside names are escaped."""
        assert PostgresDbAdapter().quote_identifier('we"ird') == '"we""ird"'
        assert MySqlDbAdapter().quote_identifier("we`ird") == "`we``ird`"

    def test_literals(self):
        """String literals double single quotes."""
        assert PostgresDbAdapter().literal("o'brien") == "'o''brien'"
        assert SqlServerDbAdapter().literal("o'brien") == "N'o''brien'"
        assert MySqlDbAdapter().literal("a\\b") == "'a\\\\b'"


class TestDeleteScript:
    """Delete script rendering."""

    def test_one_delete_per_table_in_order(self, acyclic_graph: GraphBuilder):
        """Deletes follow the graph order."""
        script = PostgresDbAdapter().build_delete_command_text(acyclic_graph)

        assert script == 'DELETE FROM "dbo"."Orders";\nDELETE FROM "dbo"."Customers";'

    def test_postgres_cycles_disable_triggers(self, cyclic_graph: GraphBuilder):
        """Triggers are disabled on the tables referenced by broken foreign keys."""
        lines = PostgresDbAdapter().build_delete_command_text(cyclic_graph).splitlines()

        assert lines == [
            'ALTER TABLE "dbo"."A" DISABLE TRIGGER ALL;',
            'DELETE FROM "dbo"."A";',
            'DELETE FROM "dbo"."B";',
            'ALTER TABLE "dbo"."A" ENABLE TRIGGER ALL;',
        ]

    def test_sqlserver_cycles_nocheck_constraint(self, cyclic_graph: GraphBuilder):
        """Only the broken foreign key is switched off and rechecked."""
        lines = SqlServerDbAdapter().build_delete_command_text(cyclic_graph).splitlines()

        assert lines == [
            "ALTER TABLE [dbo].[B] NOCHECK CONSTRAINT [FK_B_A];",
            "DELETE FROM [dbo].[A];",
            "DELETE FROM [dbo].[B];",
            "ALTER TABLE [dbo].[B] WITH CHECK CHECK CONSTRAINT [FK_B_A];",
        ]

    def test_mysql_cycles_toggle_checks(self, cyclic_graph: GraphBuilder):
        """MySQL switches foreign key checks off for the session."""
        lines = MySqlDbAdapter().build_delete_command_text(cyclic_graph).splitlines()

        assert lines[0] == "SET FOREIGN_KEY_CHECKS = 0;"
        assert lines[-1] == "SET FOREIGN_KEY_CHECKS = 1;"

    def test_sqlite_cycles_defer_checks(self, cyclic_graph: GraphBuilder):
        """SQLite defers foreign key checks to commit."""
        lines = SqliteDbAdapter().build_delete_command_text(cyclic_graph).splitlines()

        assert lines == [
            "PRAGMA defer_foreign_keys = ON;",
            'DELETE FROM "dbo"."A";',
            'DELETE FROM "dbo"."B";',
        ]

    def test_no_constraint_statements_without_cycles(self, acyclic_graph: GraphBuilder):
        """Acyclic graphs only delete."""
        for adapter in (PostgresDbAdapter(), SqlServerDbAdapter(), MySqlDbAdapter()):
            lines = adapter.build_delete_command_text(acyclic_graph).splitlines()
            assert all(line.startswith("DELETE FROM") for line in lines)


class TestReseedScript:
    """Reseed script rendering."""

    def test_postgres(self):
        """Sequences owned by each table restart at 1."""
        script = PostgresDbAdapter().build_reseed_command_text([ORDERS, CUSTOMERS])
        lines = script.splitlines()

        assert len(lines) == 2
        assert "setval(s.seq, 1, false)" in lines[0]
        assert "pg_get_serial_sequence('\"dbo\".\"Orders\"', a.attname)" in lines[0]
        assert "'\"dbo\".\"Customers\"'::regclass" in lines[1]

    def test_sqlserver(self):
        """Identity columns are reseeded only when used."""
        script = SqlServerDbAdapter().build_reseed_command_text([ORDERS])

        assert "last_value IS NOT NULL" in script
        assert "DBCC CHECKIDENT (N'[dbo].[Orders]', RESEED, 0)" in script

    def test_mysql(self):
        """AUTO_INCREMENT is reset on every table."""
        script = MySqlDbAdapter().build_reseed_command_text([ORDERS, CUSTOMERS])

        assert script == (
            "ALTER TABLE `dbo`.`Orders` AUTO_INCREMENT = 1;\n"
            "ALTER TABLE `dbo`.`Customers` AUTO_INCREMENT = 1;"
        )

    def test_sqlite(self):
        """sqlite_sequence rows are cleared for the reset tables."""
        script = SqliteDbAdapter().build_reseed_command_text([Table(None, "orders")])

        assert script == "DELETE FROM sqlite_sequence WHERE name IN ('orders');"

    def test_sqlite_sequence_detected(self, sqlite_engine: Engine):
        """AUTOINCREMENT tables create the counter table reseeding clears."""
        with sqlite_engine.connect() as conn:
            assert SqliteDbAdapter().check_supports_reseed(conn) is True

    def test_sqlite_without_sequence(self, empty_sqlite_engine: Engine):
        """Plain INTEGER PRIMARY KEY tables leave nothing to reseed."""
        with empty_sqlite_engine.begin() as conn:
            conn.execute(text("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT)"))
            assert SqliteDbAdapter().check_supports_reseed(conn) is False

    @pytest.mark.parametrize("adapter", [PostgresDbAdapter(), SqlServerDbAdapter(), MySqlDbAdapter()])
    def test_server_engines_always_reseed(self, adapter: DbAdapter):
        """Engines with catalog-defined counters do not query before reseeding."""
        assert adapter.check_supports_reseed(None) is True


class TestDiscoveryQueries:
    """Scope filters in the discovery queries."""

    def test_postgres_unfiltered(self):
        """System schemas are always excluded."""
        sql = PostgresDbAdapter().build_table_command_text(RespawnerOptions())

        assert "FROM information_schema.tables t" in sql
        assert "t.table_schema NOT IN ('pg_catalog', 'information_schema')" in sql
        assert "t.table_type = 'BASE TABLE'" in sql

    def test_postgres_scope(self):
        """Schema and table filters become WHERE clauses."""
        options = RespawnerOptions(
            schemas_to_include=["public"],
            schemas_to_exclude=["audit"],
            tables_to_include=["public.orders", "customers"],
            tables_to_ignore=["alembic_version"],
        )
        sql = PostgresDbAdapter().build_table_command_text(options)

        assert "t.table_schema IN ('public')" in sql
        assert "t.table_schema NOT IN ('audit')" in sql
        assert (
            "((t.table_schema = 'public' AND t.table_name = 'orders') "
            "OR t.table_name = 'customers')"
        ) in sql
        assert "NOT (t.table_name = 'alembic_version')" in sql

    def test_relationship_scope_applies_to_both_ends(self):
        """Foreign keys are kept only when parent and child are in scope."""
        options = RespawnerOptions(schemas_to_include=["sales"])
        sql = SqlServerDbAdapter().build_relationship_command_text(options)

        assert "ps.name IN (N'sales')" in sql
        assert "cs.name IN (N'sales')" in sql

    def test_mysql_defaults_to_current_database(self):
        """Without included schemas only DATABASE() is reset."""
        adapter = MySqlDbAdapter()

        assert "t.TABLE_SCHEMA = DATABASE()" in adapter.build_table_command_text(RespawnerOptions())
        scoped = adapter.build_table_command_text(RespawnerOptions(schemas_to_include=["app"]))
        assert "DATABASE()" not in scoped
        assert "t.TABLE_SCHEMA IN ('app')" in scoped

    def test_sqlite_ignores_schema_filters(self):
        """SQLite tables match by name only."""
        options = RespawnerOptions(schemas_to_include=["main"], tables_to_ignore=["x.alembic_version"])
        sql = SqliteDbAdapter().build_table_command_text(options)

        assert "main" not in sql
        assert "NOT (m.name = 'alembic_version')" in sql

    def test_filter_values_are_escaped(self):
        """Filter values are rendered as escaped literals."""
        sql = PostgresDbAdapter().build_table_command_text(
            RespawnerOptions(tables_to_ignore=["o'brien"])
        )

        assert "t.table_name = 'o''brien'" in sql


class TestTemporalTables:
    """System versioning statements."""

    def test_sqlserver_versioning(self):
        """Versioning is turned off and back on with the history table."""
        adapter = SqlServerDbAdapter()
        temporal = [TemporalTable("dbo", "Prices", "history", "PricesHistory")]

        assert adapter.build_turn_off_system_versioning_command_text(temporal) == (
            "ALTER TABLE [dbo].[Prices] SET (SYSTEM_VERSIONING = OFF);"
        )
        assert adapter.build_turn_on_system_versioning_command_text(temporal) == (
            "ALTER TABLE [dbo].[Prices] SET (SYSTEM_VERSIONING = ON "
            "(HISTORY_TABLE = [history].[PricesHistory]));"
        )

    def test_sqlserver_temporal_query(self):
        """Only system-versioned tables in scope are listed."""
        sql = SqlServerDbAdapter().build_temporal_table_command_text(
            RespawnerOptions(schemas_to_exclude=["archive"])
        )

        assert "t.temporal_type = 2" in sql
        assert "s.name NOT IN (N'archive')" in sql

    @pytest.mark.parametrize("adapter", [PostgresDbAdapter(), MySqlDbAdapter(), SqliteDbAdapter()])
    def test_unsupported(self, adapter: DbAdapter):
        """Other engines do not render versioning statements."""
        with pytest.raises(NotImplementedError):
            adapter.build_temporal_table_command_text(RespawnerOptions())
        with pytest.raises(NotImplementedError):
            adapter.build_turn_off_system_versioning_command_text([])

    def test_sqlite_has_no_temporal_tables(self, sqlite_engine: Engine):
        """The default support check answers False."""
        with sqlite_engine.connect() as conn:
            assert SqliteDbAdapter().check_supports_temporal_tables(conn) is False


class TestCommandTimeout:
    """Timeout statements."""

    def test_rendered(self):
        """Seconds are converted to each engine's unit."""
        assert PostgresDbAdapter().build_command_timeout_text(30) == (
            "SET LOCAL statement_timeout = 30000"
        )
        assert SqlServerDbAdapter().build_command_timeout_text(5) == "SET LOCK_TIMEOUT 5000"
        assert MySqlDbAdapter().build_command_timeout_text(5) == (
            "SET SESSION innodb_lock_wait_timeout = 5"
        )

    def test_sqlite_has_none(self):
        """SQLite has no per-transaction timeout statement."""
        assert SqliteDbAdapter().build_command_timeout_text(5) is None


class TestRestoreSession:
    """Statements undoing session-scoped settings after a reset."""

    def test_mysql_cycles_and_timeout(self, cyclic_graph: GraphBuilder):
        """Foreign key checks and the lock wait timeout go back to their defaults."""
        script = MySqlDbAdapter().build_restore_session_command_text(cyclic_graph, 5)

        assert script == (
            "SET FOREIGN_KEY_CHECKS = 1;\n"
            "SET SESSION innodb_lock_wait_timeout = DEFAULT;"
        )

    def test_mysql_cycles_only(self, cyclic_graph: GraphBuilder):
        """Without a timeout only foreign key checks are restored."""
        script = MySqlDbAdapter().build_restore_session_command_text(cyclic_graph, None)

        assert script == "SET FOREIGN_KEY_CHECKS = 1;"

    def test_mysql_nothing_changed(self, acyclic_graph: GraphBuilder):
        """An acyclic plan without a timeout changes no session setting."""
        assert MySqlDbAdapter().build_restore_session_command_text(acyclic_graph, None) is None

    def test_sqlserver_lock_timeout(self, cyclic_graph: GraphBuilder):
        """LOCK_TIMEOUT returns to waiting indefinitely."""
        adapter = SqlServerDbAdapter()

        assert adapter.build_restore_session_command_text(cyclic_graph, 5) == "SET LOCK_TIMEOUT -1;"
        assert adapter.build_restore_session_command_text(cyclic_graph, None) is None

    @pytest.mark.parametrize("adapter", [PostgresDbAdapter(), SqliteDbAdapter()])
    def test_transaction_scoped_engines(self, adapter: DbAdapter, cyclic_graph: GraphBuilder):
        """Settings that end with the transaction need no restore."""
        assert adapter.build_restore_session_command_text(cyclic_graph, 5) is None


class TestExecuteScript:
    """Running rendered scripts."""

    def test_statement_per_line(self, empty_sqlite_engine: Engine):
        """Each line runs as its own statement."""
        script = "CREATE TABLE t (id INTEGER);\nINSERT INTO t VALUES (1);\n\nINSERT INTO t VALUES (2);"

        with empty_sqlite_engine.begin() as conn:
            SqliteDbAdapter().execute_script(conn, script)
            count = conn.execute(text("SELECT COUNT(*) FROM t")).scalar()

        assert count == 2

    def test_sqlite_pragma_inside_transaction(
        self, sqlite_engine: Engine, row_count: Callable[[Engine, str], int]
    ):
        """Deferred foreign keys apply on a connection that has not started a transaction."""
        script = 'PRAGMA defer_foreign_keys = ON;\nDELETE FROM "a";\nDELETE FROM "b";'

        with sqlite_engine.connect() as conn, conn.begin():
            assert not conn.connection.dbapi_connection.in_transaction
            SqliteDbAdapter().execute_script(conn, script)

        assert row_count(sqlite_engine, "a") == 0
        assert row_count(sqlite_engine, "b") == 0
