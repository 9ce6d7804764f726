"""PostgreSQL adapter."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy.dialects.postgresql.base import PGDialect

from respawn.adapters.base import DbAdapter
from respawn.core.types import Table

if TYPE_CHECKING:
    from sqlalchemy.engine.interfaces import Dialect

    from respawn.core.options import RespawnerOptions
    from respawn.graph import GraphBuilder

SYSTEM_SCHEMAS = ("pg_catalog", "information_schema")


class PostgresDbAdapter(DbAdapter):
    """PostgreSQL: cycles are broken by disabling triggers on the referenced tables.

    ``ALTER TABLE ... DISABLE TRIGGER ALL`` also disables the internal foreign key
    triggers, which requires the connecting role to own the tables (or be superuser).
    """

    @property
    def dialect_name(self) -> str:
        return "postgresql"

    def _create_dialect(self) -> Dialect:
        return PGDialect()

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        clauses = [
            "t.table_type = 'BASE TABLE'",
            f"t.table_schema NOT IN ({self._literal_list(SYSTEM_SCHEMAS)})",
            *self._scope_clauses(options, "t.table_schema", "t.table_name"),
        ]
        return "SELECT t.table_schema, t.table_name FROM information_schema.tables t" + self._where(
            clauses
        )

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        clauses = [
            "con.contype = 'f'",
            *self._scope_clauses(options, "pn.nspname", "pc.relname"),
            *self._scope_clauses(options, "cn.nspname", "cc.relname"),
        ]
        return (
            "SELECT pn.nspname, pc.relname, cn.nspname, cc.relname, con.conname "
            "FROM pg_catalog.pg_constraint con "
            "JOIN pg_catalog.pg_class cc ON cc.oid = con.conrelid "
            "JOIN pg_catalog.pg_namespace cn ON cn.oid = cc.relnamespace "
            "JOIN pg_catalog.pg_class pc ON pc.oid = con.confrelid "
            "JOIN pg_catalog.pg_namespace pn ON pn.oid = pc.relnamespace" + self._where(clauses)
        )

    def build_reseed_command_text(self, tables: Sequence[Table]) -> str:
        # pg_get_serial_sequence covers both serial and identity columns
        statements = []
        for table in tables:
            name = self.literal(self.quote(table))
            statements.append(
                "SELECT setval(s.seq, 1, false) FROM ("
                f"SELECT pg_get_serial_sequence({name}, a.attname) AS seq "
                "FROM pg_catalog.pg_attribute a "
                f"WHERE a.attrelid = {name}::regclass AND a.attnum > 0 AND NOT a.attisdropped"
                ") s WHERE s.seq IS NOT NULL"
            )
        return self._script(statements)

    def build_command_timeout_text(self, seconds: int) -> str | None:
        return f"SET LOCAL statement_timeout = {seconds * 1000}"

    def _disable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        return [f"ALTER TABLE {self.quote(t)} DISABLE TRIGGER ALL" for t in graph.cyclic_tables]

    def _enable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        return [f"ALTER TABLE {self.quote(t)} ENABLE TRIGGER ALL" for t in graph.cyclic_tables]
