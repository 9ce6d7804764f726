"""Catalog types for Respawn.

Immutable value identities for what discovery finds in the live database:
tables, foreign-key relationships between them, and system-versioned
(temporal) tables with their history tables.
"""

from __future__ import annotations

from dataclasses import dataclass

from respawn.core.compat import StrEnum


class DialectName(StrEnum):
    """Database dialects with a bundled adapter (SQLAlchemy backend names)."""

    POSTGRESQL = "postgresql"
    MSSQL = "mssql"
    MYSQL = "mysql"
    MARIADB = "mariadb"
    SQLITE = "sqlite"

    @classmethod
    def values(cls) -> list[str]:
        """Return all supported dialect names."""
        return [d.value for d in cls]


@dataclass(frozen=True)
class Table:
    """A table, optionally qualified by schema.

    Engines without schema namespacing (SQLite) report ``schema=None``.
    """

    schema: str | None
    name: str

    @classmethod
    def parse(cls, value: str) -> Table:
        """Parse ``"name"`` or ``"schema.name"``.

        Examples:
            "orders" -> Table(None, "orders")
            "sales.orders" -> Table("sales", "orders")
        """
        value = value.strip()
        if not value:
            raise ValueError("Table name must not be empty")
        schema, sep, name = value.rpartition(".")
        if not sep:
            return cls(None, value)
        if not schema or not name:
            raise ValueError(f"Invalid table name: '{value}'. Expected 'name' or 'schema.name'")
        return cls(schema, name)

    @property
    def sort_key(self) -> tuple[str, str]:
        """Deterministic ordering key; a missing schema sorts first."""
        return (self.schema or "", self.name)

    def matches(self, other: Table) -> bool:
        """Whether ``other`` is selected by this table used as a filter.

        A filter without schema matches the name in any schema.
        """
        if self.name != other.name:
            return False
        return self.schema is None or self.schema == other.schema

    def __str__(self) -> str:
        if self.schema is None:
            return self.name
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True)
class Relationship:
    """A foreign key: ``child`` has a foreign key into ``parent``.

    Children are emptied before the parent they reference.
    """

    parent: Table
    child: Table
    name: str

    @property
    def is_self_referencing(self) -> bool:
        return self.parent == self.child

    def __str__(self) -> str:
        return f"{self.child} -> {self.parent} ({self.name})"


@dataclass(frozen=True)
class TemporalTable:
    """A system-versioned table paired with its history table."""

    schema: str | None
    name: str
    history_schema: str | None
    history_name: str

    @property
    def table(self) -> Table:
        return Table(self.schema, self.name)

    @property
    def history_table(self) -> Table:
        return Table(self.history_schema, self.history_name)

    def __str__(self) -> str:
        return f"{self.table} (history: {self.history_table})"
