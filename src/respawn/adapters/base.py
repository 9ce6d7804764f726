"""Database adapter interface.

An adapter owns every engine-specific detail: the catalog queries used for
discovery, identifier quoting, and the statements that delete, reseed and
toggle system versioning. The respawner only talks to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from functools import cached_property
from typing import TYPE_CHECKING

from respawn.core.types import Table, TemporalTable

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine.interfaces import Dialect

    from respawn.core.options import RespawnerOptions
    from respawn.graph import GraphBuilder


class DbAdapter(ABC):
    """Interface for database adapters.

    Rendered scripts hold one statement per line so they can be replayed through
    any DBAPI driver, including those that refuse multi-statement batches.

    Discovery queries return rows with these columns:

    - tables: ``(schema, name)``
    - relationships: ``(parent_schema, parent_name, child_schema, child_name,
      constraint_name)``
    - temporal tables: ``(schema, name, history_schema, history_name)``
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """SQLAlchemy backend name this adapter handles."""
        ...

    @abstractmethod
    def _create_dialect(self) -> Dialect:
        """SQLAlchemy dialect used for quoting; no driver is loaded."""
        ...

    @abstractmethod
    def build_table_command_text(self, options: RespawnerOptions) -> str:
        """Render the query listing every in-scope table."""
        ...

    @abstractmethod
    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        """Render the query listing foreign keys between in-scope tables."""
        ...

    @abstractmethod
    def build_reseed_command_text(self, tables: Sequence[Table]) -> str:
        """Render statements that reset identity/auto-increment counters."""
        ...

    @abstractmethod
    def _disable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        """Statements run before the deletes when the graph has cycles."""
        ...

    @abstractmethod
    def _enable_constraint_statements(self, graph: GraphBuilder) -> list[str]:
        """Statements run after the deletes when the graph has cycles."""
        ...

    def supports(self, dialect: str) -> bool:
        """Whether this adapter can drive a connection of the given backend."""
        return dialect == self.dialect_name

    def build_delete_command_text(self, graph: GraphBuilder) -> str:
        """Render one DELETE per table in ``graph.to_delete`` order.

        Foreign keys broken by cycles are disabled around the deletes.
        """
        statements: list[str] = []
        if graph.has_cycles:
            statements.extend(self._disable_constraint_statements(graph))
        statements.extend(f"DELETE FROM {self.quote(table)}" for table in graph.to_delete)
        if graph.has_cycles:
            statements.extend(self._enable_constraint_statements(graph))
        return self._script(statements)

    def check_supports_temporal_tables(self, connection: Connection) -> bool:
        """Whether the connected server has system-versioned tables."""
        return False

    def build_temporal_table_command_text(self, options: RespawnerOptions) -> str:
        """Render the query listing system-versioned tables."""
        raise NotImplementedError(f"{self.dialect_name} does not support temporal tables")

    def build_turn_off_system_versioning_command_text(
        self, temporal_tables: Sequence[TemporalTable]
    ) -> str:
        raise NotImplementedError(f"{self.dialect_name} does not support temporal tables")

    def build_turn_on_system_versioning_command_text(
        self, temporal_tables: Sequence[TemporalTable]
    ) -> str:
        raise NotImplementedError(f"{self.dialect_name} does not support temporal tables")

    def check_supports_reseed(self, connection: Connection) -> bool:
        """Whether the reseed script can run against the connected database."""
        return True

    def build_command_timeout_text(self, seconds: int) -> str | None:
        """Render a statement applying a timeout to the reset's statements.

        Returns None when the engine has no such statement.
        """
        return None

    def build_restore_session_command_text(
        self, graph: GraphBuilder, command_timeout: int | None
    ) -> str | None:
        """Render statements undoing session settings the delete script changes.

        Run after every reset transaction, whether it committed or rolled back,
        so a pooled connection goes back with the server defaults. Returns None
        when every setting is scoped to the transaction.
        """
        return None

    def execute_script(self, connection: Connection, script: str) -> None:
        """Execute a rendered script statement by statement."""
        for line in script.splitlines():
            statement = line.strip()
            if statement:
                connection.exec_driver_sql(statement)

    # === Rendering helpers ===

    @cached_property
    def dialect(self) -> Dialect:
        return self._create_dialect()

    def quote_identifier(self, name: str) -> str:
        return self.dialect.identifier_preparer.quote_identifier(name)

    def quote(self, table: Table) -> str:
        """Quoted, schema-qualified table name."""
        if table.schema is None:
            return self.quote_identifier(table.name)
        return f"{self.quote_identifier(table.schema)}.{self.quote_identifier(table.name)}"

    def literal(self, value: str) -> str:
        """Render a string literal escaped for this dialect."""
        return "'" + value.replace("'", "''") + "'"

    def _literal_list(self, values: Iterable[str]) -> str:
        return ", ".join(self.literal(v) for v in values)

    def _table_match(self, table: Table, schema_column: str | None, name_column: str) -> str:
        clause = f"{name_column} = {self.literal(table.name)}"
        if table.schema is None or schema_column is None:
            return clause
        return f"({schema_column} = {self.literal(table.schema)} AND {clause})"

    def _scope_clauses(
        self,
        options: RespawnerOptions,
        schema_column: str | None,
        name_column: str,
    ) -> list[str]:
        """Build WHERE clauses for the include/exclude options.

        With ``schema_column=None`` schema filters are skipped and tables match by name.
        """
        clauses: list[str] = []
        if schema_column is not None:
            if options.schemas_to_include:
                clauses.append(
                    f"{schema_column} IN ({self._literal_list(options.schemas_to_include)})"
                )
            if options.schemas_to_exclude:
                clauses.append(
                    f"{schema_column} NOT IN ({self._literal_list(options.schemas_to_exclude)})"
                )
        if options.tables_to_include:
            matches = " OR ".join(
                self._table_match(t, schema_column, name_column) for t in options.tables_to_include
            )
            clauses.append(f"({matches})")
        if options.tables_to_ignore:
            matches = " OR ".join(
                self._table_match(t, schema_column, name_column) for t in options.tables_to_ignore
            )
            clauses.append(f"NOT ({matches})")
        return clauses

    @staticmethod
    def _where(clauses: Sequence[str]) -> str:
        if not clauses:
            return ""
        return " WHERE " + " AND ".join(clauses)

    @staticmethod
    def _script(statements: Iterable[str]) -> str:
        return "\n".join(f"{statement};" for statement in statements)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
