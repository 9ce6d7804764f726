"""SQL Server adapter."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy.dialects.mssql.base import MSDialect

from respawn.adapters.base import DbAdapter
from respawn.core.types import Relationship, Table, TemporalTable

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine.interfaces import Dialect

    from respawn.core.options import RespawnerOptions
    from respawn.graph import GraphBuilder

# Temporal tables arrived with SQL Server 2016 (compatibility level 130)
TEMPORAL_COMPATIBILITY_LEVEL = 130


class SqlServerDbAdapter(DbAdapter):
    """SQL Server: individual foreign keys on cycles are switched to NOCHECK.

    The only bundled adapter with system-versioned (temporal) table support.
    """

    @property
    def dialect_name(self) -> str:
        return "mssql"

    def _create_dialect(self) -> Dialect:
        return MSDialect()

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        clauses = ["t.is_ms_shipped = 0", *self._scope_clauses(options, "s.name", "t.name")]
        return (
            "SELECT s.name, t.name FROM sys.tables t "
            "INNER JOIN sys.schemas s ON t.schema_id = s.schema_id" + self._where(clauses)
        )

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        clauses = [
            *self._scope_clauses(options, "ps.name", "pt.name"),
            *self._scope_clauses(options, "cs.name", "ct.name"),
        ]
        # sys.foreign_keys.parent_object_id is the referencing (child) table
        return (
            "SELECT ps.name, pt.name, cs.name, ct.name, fk.name "
            "FROM sys.foreign_keys fk "
            "INNER JOIN sys.tables ct ON fk.parent_object_id = ct.object_id "
            "INNER JOIN sys.schemas cs ON ct.schema_id = cs.schema_id "
            "INNER JOIN sys.tables pt ON fk.referenced_object_id = pt.object_id "
            "INNER JOIN sys.schemas ps ON pt.schema_id = ps.schema_id" + self._where(clauses)
        )

    def check_supports_temporal_tables(self, connection: Connection) -> bool:
        level = connection.exec_driver_sql(
            "SELECT compatibility_level FROM sys.databases WHERE name = DB_NAME()"
        ).scalar()
        return level is not None and int(level) >= TEMPORAL_COMPATIBILITY_LEVEL

    def build_temporal_table_command_text(self, options: RespawnerOptions) -> str:
        clauses = ["t.temporal_type = 2", *self._scope_clauses(options, "s.name", "t.name")]
        return (
            "SELECT s.name, t.name, hs.name, ht.name FROM sys.tables t "
            "INNER JOIN sys.schemas s ON t.schema_id = s.schema_id "
            "INNER JOIN sys.tables ht ON t.history_table_id = ht.object_id "
            "INNER JOIN sys.schemas hs ON ht.schema_id = hs.schema_id" + self._where(clauses)
        )

    def build_turn_off_system_versioning_command_text(
        self, temporal_tables: Sequence[TemporalTable]
    ) -> str:
        return self._script(
            f"ALTER TABLE {self.quote(t.table)} SET (SYSTEM_VERSIONING = OFF)"
            for t in temporal_tables
        )

    def build_turn_on_system_versioning_command_text(
        self, temporal_tables: Sequence[TemporalTable]
    ) -> str:
        return self._script(
            f"ALTER TABLE {self.quote(t.table)} SET (SYSTEM_VERSIONING = ON "
            f"(HISTORY_TABLE = {self.quote(t.history_table)}))"
            for t in temporal_tables
        )

    def build_reseed_command_text(self, tables: Sequence[Table]) -> str:
        statements = []
        for table in tables:
            name = self.literal(self.quote(table))
            # Tables never inserted into keep last_value NULL; reseeding them to 0
            # would make the first identity 0 instead of the seed
            statements.append(
                "IF EXISTS (SELECT 1 FROM sys.identity_columns "
                f"WHERE object_id = OBJECT_ID({name}) AND last_value IS NOT NULL) "
                f"DBCC CHECKIDENT ({name}, RESEED, 0)"
            )
        return self._script(statements)

    def build_command_timeout_text(self, seconds: int) -> str | None:
        return f"SET LOCK_TIMEOUT {seconds * 1000}"

    def build_restore_session_command_text(
        self, graph: GraphBuilder, command_timeout: int | None
    ) -> str | None:
        if command_timeout is None:
            return None
        return self._script(["SET LOCK_TIMEOUT -1"])

    def literal(self, value: str) -> str:
        return "N" + super().literal(value)

    def _cyclic(self, graph: GraphBuilder) -> list[Relationship]:
        return sorted(graph.cyclic_relationships, key=lambda r: (r.child.sort_key, r.name))

    def _disable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        return [
            f"ALTER TABLE {self.quote(rel.child)} NOCHECK CONSTRAINT {self.quote_identifier(rel.name)}"
            for rel in self._cyclic(graph)
        ]

    def _enable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        return [
            f"ALTER TABLE {self.quote(rel.child)} WITH CHECK CHECK CONSTRAINT "
            f"{self.quote_identifier(rel.name)}"
            for rel in self._cyclic(graph)
        ]
