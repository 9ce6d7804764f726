"""MySQL / MariaDB adapter."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy.dialects.mysql.base import MySQLDialect

from respawn.adapters.base import DbAdapter
from respawn.core.types import Table

if TYPE_CHECKING:
    from sqlalchemy.engine.interfaces import Dialect

    from respawn.core.options import RespawnerOptions
    from respawn.graph import GraphBuilder

SYSTEM_SCHEMAS = ("mysql", "information_schema", "performance_schema", "sys")


class MySqlDbAdapter(DbAdapter):
    """MySQL and MariaDB.

    Without ``schemas_to_include`` only the connection's current database is
    reset. ``ALTER TABLE ... AUTO_INCREMENT`` causes an implicit commit, so the
    reseed script commits the preceding deletes.
    """

    @property
    def dialect_name(self) -> str:
        return "mysql"

    def supports(self, dialect: str) -> bool:
        return dialect in ("mysql", "mariadb")

    def _create_dialect(self) -> Dialect:
        return MySQLDialect()

    def literal(self, value: str) -> str:
        return super().literal(value.replace("\\", "\\\\"))

    def _schema_clauses(self, options: RespawnerOptions, schema_column: str) -> list[str]:
        clauses = [f"{schema_column} NOT IN ({self._literal_list(SYSTEM_SCHEMAS)})"]
        if not options.schemas_to_include:
            clauses.append(f"{schema_column} = DATABASE()")
        return clauses

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        clauses = [
            "t.TABLE_TYPE = 'BASE TABLE'",
            *self._schema_clauses(options, "t.TABLE_SCHEMA"),
            *self._scope_clauses(options, "t.TABLE_SCHEMA", "t.TABLE_NAME"),
        ]
        return "SELECT t.TABLE_SCHEMA, t.TABLE_NAME FROM information_schema.TABLES t" + self._where(
            clauses
        )

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        clauses = [
            *self._schema_clauses(options, "rc.CONSTRAINT_SCHEMA"),
            *self._scope_clauses(options, "rc.UNIQUE_CONSTRAINT_SCHEMA", "rc.REFERENCED_TABLE_NAME"),
            *self._scope_clauses(options, "rc.CONSTRAINT_SCHEMA", "rc.TABLE_NAME"),
        ]
        return (
            "SELECT rc.UNIQUE_CONSTRAINT_SCHEMA, rc.REFERENCED_TABLE_NAME, "
            "rc.CONSTRAINT_SCHEMA, rc.TABLE_NAME, rc.CONSTRAINT_NAME "
            "FROM information_schema.REFERENTIAL_CONSTRAINTS rc" + self._where(clauses)
        )

    def build_reseed_command_text(self, tables: Sequence[Table]) -> str:
        return self._script(f"ALTER TABLE {self.quote(t)} AUTO_INCREMENT = 1" for t in tables)

    def build_command_timeout_text(self, seconds: int) -> str | None:
        return f"SET SESSION innodb_lock_wait_timeout = {seconds}"

    def _disable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        return ["SET FOREIGN_KEY_CHECKS = 0"]

    def _enable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        return ["SET FOREIGN_KEY_CHECKS = 1"]

    def build_restore_session_command_text(
        self, graph: GraphBuilder, command_timeout: int | None
    ) -> str | None:
        # Both settings outlive the transaction on a MySQL session
        statements = []
        if graph.has_cycles:
            statements.append("SET FOREIGN_KEY_CHECKS = 1")
        if command_timeout is not None:
            statements.append("SET SESSION innodb_lock_wait_timeout = DEFAULT")
        return self._script(statements) if statements else None
