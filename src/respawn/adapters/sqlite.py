"""SQLite adapter."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy.dialects.sqlite.base import SQLiteDialect

from respawn.adapters.base import DbAdapter
from respawn.core.types import Table

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine.interfaces import Dialect

    from respawn.core.options import RespawnerOptions
    from respawn.graph import GraphBuilder


class SqliteDbAdapter(DbAdapter):
    """SQLite: tables have no schema, cycles are handled by deferring foreign keys.

    Schema filters are ignored and table filters match by name. Reseeding clears
    ``sqlite_sequence``, which only exists once an AUTOINCREMENT table was created;
    without it there is nothing to reseed, since plain ``INTEGER PRIMARY KEY``
    tables restart on their own once empty.
    """

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def _create_dialect(self) -> Dialect:
        return SQLiteDialect()

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        clauses = [
            "m.type = 'table'",
            "m.name NOT LIKE 'sqlite_%'",
            *self._scope_clauses(options, None, "m.name"),
        ]
        return "SELECT NULL, m.name FROM sqlite_master m" + self._where(clauses)

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        # Composite keys yield one row per column, collapsed by the respawner
        clauses = [
            "m.type = 'table'",
            "m.name NOT LIKE 'sqlite_%'",
            *self._scope_clauses(options, None, 'p."table"'),
            *self._scope_clauses(options, None, "m.name"),
        ]
        return (
            "SELECT NULL, p.\"table\", NULL, m.name, 'FK_' || m.name || '_' || p.id "
            "FROM sqlite_master m JOIN pragma_foreign_key_list(m.name) p" + self._where(clauses)
        )

    def check_supports_reseed(self, connection: Connection) -> bool:
        result = connection.exec_driver_sql(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'"
        )
        return result.first() is not None

    def build_reseed_command_text(self, tables: Sequence[Table]) -> str:
        names = self._literal_list(t.name for t in tables)
        return self._script([f"DELETE FROM sqlite_sequence WHERE name IN ({names})"])

    def _disable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        return ["PRAGMA defer_foreign_keys = ON"]

    def _enable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        # defer_foreign_keys switches itself off at COMMIT or ROLLBACK
        return []

    def execute_script(self, connection: Connection, script: str) -> None:
        # pysqlite only opens its transaction at the first DML statement, and a
        # pragma issued before that is lost once the transaction starts
        if not connection.connection.dbapi_connection.in_transaction:
            connection.exec_driver_sql("BEGIN")
        super().execute_script(connection, script)
