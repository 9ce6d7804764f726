"""The Respawner: builds a reset plan once, replays it on demand.

Build phase (``Respawner.create``) discovers tables, foreign keys and temporal
tables through the adapter, orders the tables with ``GraphBuilder`` and renders
the delete and reseed scripts. Reset phase (``Respawner.reset``) executes the
cached scripts in a transaction, suspending system versioning around them when
temporal tables were found.

Example:
    from respawn import Respawner, RespawnerOptions

    respawner = Respawner.create(
        "postgresql://localhost/app_test",
        RespawnerOptions(schemas_to_include=["public"], tables_to_ignore=["alembic_version"]),
    )

    # between tests
    respawner.reset("postgresql://localhost/app_test")
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import URL, Connection, Engine

from respawn.adapters import DbAdapter, get_adapter
from respawn.core.connection import DatabaseConnection, backend_name
from respawn.core.options import RespawnerOptions
from respawn.core.types import Relationship, Table, TemporalTable
from respawn.exceptions import AdapterMismatchError, NoTablesFoundError, VersioningRestoreError
from respawn.graph import GraphBuilder

if TYPE_CHECKING:
    from sqlalchemy.engine import NestedTransaction, RootTransaction

logger = logging.getLogger(__name__)

Connectable = str | URL | Engine | Connection


def _begin(connection: Connection) -> RootTransaction | NestedTransaction:
    """Begin a transaction, or a savepoint when the caller already holds one."""
    if connection.in_transaction():
        return connection.begin_nested()
    return connection.begin()


def _resolve_adapter(options: RespawnerOptions, dialect: str) -> DbAdapter:
    """Pick the adapter for a dialect, failing fast on a mismatch.

    Raises:
        AdapterMismatchError: If ``options.db_adapter`` cannot drive ``dialect``
        UnsupportedDialectError: If no adapter is configured and none handles ``dialect``
    """
    if options.db_adapter is None:
        return get_adapter(dialect)
    if not options.db_adapter.supports(dialect):
        raise AdapterMismatchError(options.db_adapter.dialect_name, dialect)
    return options.db_adapter


class Respawner:
    """Resets a database to an empty state between test runs.

    Instances are built with ``create`` and are read-only afterwards, so one
    instance can serve any number of sequential ``reset`` calls, and independent
    connections can reset concurrently from the same instance. A single
    connection must not be shared by concurrent resets.
    """

    def __init__(
        self,
        options: RespawnerOptions,
        adapter: DbAdapter,
        tables: frozenset[Table],
        graph: GraphBuilder,
        temporal_tables: tuple[TemporalTable, ...],
        can_reseed: bool = True,
    ) -> None:
        """Use ``Respawner.create`` instead; this only stores a computed plan."""
        self._options = options
        self._adapter = adapter
        self._tables = tables
        self._graph = graph
        self._temporal_tables = temporal_tables
        self._delete_sql = adapter.build_delete_command_text(graph)
        self._reseed_sql: str | None = None
        if options.with_reseed:
            # Empty when the database keeps no counters to reset
            self._reseed_sql = (
                adapter.build_reseed_command_text(graph.to_delete) if can_reseed else ""
            )
        self._restore_session_sql = adapter.build_restore_session_command_text(
            graph, options.command_timeout
        )

    # === Build phase ===

    @classmethod
    def create(cls, target: Connectable, options: RespawnerOptions | None = None) -> Respawner:
        """Discover the schema and build the reset plan.

        Args:
            target: Database URL, SQLAlchemy Engine, or open Connection. URLs and
                engines are connected to and released again; a Connection is used
                as-is and left open.
            options: Scope and behavior options

        Returns:
            A respawner holding the rendered delete (and reseed) script

        Raises:
            AdapterMismatchError: If ``options.db_adapter`` does not match the database
                (raised before connecting)
            NoTablesFoundError: If no table is in scope
            sqlalchemy.exc.DBAPIError: If a discovery query fails
        """
        options = options or RespawnerOptions()

        if isinstance(target, Connection):
            adapter = _resolve_adapter(options, target.dialect.name)
            return cls._build(target, options, adapter)

        if isinstance(target, Engine):
            adapter = _resolve_adapter(options, target.dialect.name)
            with target.connect() as connection:
                return cls._build(connection, options, adapter)

        adapter = _resolve_adapter(options, backend_name(target))
        with DatabaseConnection(target) as db, db.connect() as connection:
            return cls._build(connection, options, adapter)

    @classmethod
    def _build(
        cls, connection: Connection, options: RespawnerOptions, adapter: DbAdapter
    ) -> Respawner:
        transaction = _begin(connection)
        try:
            tables = cls._get_all_tables(connection, options, adapter)
            if not tables:
                raise NoTablesFoundError(
                    list(options.schemas_to_include), list(options.schemas_to_exclude)
                )

            temporal_tables: tuple[TemporalTable, ...] = ()
            if options.check_temporal_tables and adapter.check_supports_temporal_tables(
                connection
            ):
                temporal_tables = cls._get_all_temporal_tables(connection, options, adapter)

            relationships = cls._get_relationships(connection, options, adapter)
            can_reseed = options.with_reseed and adapter.check_supports_reseed(connection)
        finally:
            # Discovery only reads
            transaction.rollback()

        in_scope = {
            rel for rel in relationships if rel.parent in tables and rel.child in tables
        }
        if len(in_scope) < len(relationships):
            logger.debug(
                f"Dropped {len(relationships) - len(in_scope)} relationships "
                f"referencing tables outside the configured scope"
            )

        graph = GraphBuilder(tables, in_scope)
        if graph.has_cycles:
            logger.warning(
                f"Foreign key cycles found; constraints will be disabled during reset: "
                f"{', '.join(sorted(str(rel) for rel in graph.cyclic_relationships))}"
            )

        if options.with_reseed and not can_reseed:
            logger.info(f"Nothing to reseed on this {adapter.dialect_name} database")

        respawner = cls(options, adapter, frozenset(tables), graph, temporal_tables, can_reseed)
        logger.info(
            f"Built {adapter.dialect_name} reset plan for {len(tables)} tables "
            f"({len(in_scope)} relationships, {len(temporal_tables)} temporal tables)"
        )
        logger.debug(f"Delete script:\n{respawner.delete_sql}")
        return respawner

    @staticmethod
    def _get_all_tables(
        connection: Connection, options: RespawnerOptions, adapter: DbAdapter
    ) -> set[Table]:
        result = connection.exec_driver_sql(adapter.build_table_command_text(options))
        return {Table(row[0], row[1]) for row in result}

    @staticmethod
    def _get_relationships(
        connection: Connection, options: RespawnerOptions, adapter: DbAdapter
    ) -> set[Relationship]:
        result = connection.exec_driver_sql(adapter.build_relationship_command_text(options))
        # A set: engines report composite keys once per column
        return {
            Relationship(parent=Table(row[0], row[1]), child=Table(row[2], row[3]), name=row[4])
            for row in result
        }

    @staticmethod
    def _get_all_temporal_tables(
        connection: Connection, options: RespawnerOptions, adapter: DbAdapter
    ) -> tuple[TemporalTable, ...]:
        result = connection.exec_driver_sql(adapter.build_temporal_table_command_text(options))
        return tuple(TemporalTable(row[0], row[1], row[2], row[3]) for row in result)

    # === Reset phase ===

    def reset(self, target: Connectable) -> None:
        """Delete all rows from every in-scope table, and reseed if configured.

        Runs the cached delete and reseed scripts in one transaction. When the
        connection is already inside a transaction they run in a savepoint and
        become durable with the caller's commit.

        Args:
            target: Database URL, SQLAlchemy Engine, or open Connection

        Raises:
            AdapterMismatchError: If the target is not the database the plan was built for
            VersioningRestoreError: If the delete failed and re-enabling system
                versioning failed as well
            sqlalchemy.exc.DBAPIError: If any statement fails
        """
        if isinstance(target, Connection):
            self._check_dialect(target.dialect.name)
            self._reset(target)
            return

        if isinstance(target, Engine):
            self._check_dialect(target.dialect.name)
            with target.connect() as connection:
                self._reset(connection)
            return

        self._check_dialect(backend_name(target))
        with DatabaseConnection(target) as db, db.connect() as connection:
            self._reset(connection)

    def _check_dialect(self, dialect: str) -> None:
        if not self._adapter.supports(dialect):
            raise AdapterMismatchError(self._adapter.dialect_name, dialect)

    def _reset(self, connection: Connection) -> None:
        try:
            with self._system_versioning_suspended(connection):
                if self._reseed_sql is None:
                    self._execute(connection, self._delete_sql)
                else:
                    self._execute(connection, self._delete_sql, self._reseed_sql)
        except Exception as e:
            logger.error(f"Reset of {len(self._tables)} tables failed: {e}")
            raise
        logger.info(f"Reset {len(self._tables)} tables")

    @contextmanager
    def _system_versioning_suspended(self, connection: Connection) -> Generator[None, None, None]:
        """Turn system versioning off, and back on whatever happens inside.

        If the body fails and turning versioning back on succeeds, the body's error
        propagates. If only turning versioning back on fails, that error propagates.
        If both fail, ``VersioningRestoreError`` carries both.
        """
        if not self._temporal_tables:
            yield
            return

        self._execute(
            connection,
            self._adapter.build_turn_off_system_versioning_command_text(self._temporal_tables),
        )
        turn_on = self._adapter.build_turn_on_system_versioning_command_text(self._temporal_tables)
        try:
            yield
        except Exception as delete_error:
            try:
                self._execute(connection, turn_on)
            except Exception as restore_error:
                logger.error(f"Failed to turn system versioning back on: {restore_error}")
                raise VersioningRestoreError(delete_error, restore_error) from restore_error
            raise
        self._execute(connection, turn_on)

    def _execute(self, connection: Connection, *scripts: str) -> None:
        try:
            with _begin(connection):
                if self._options.command_timeout is not None:
                    timeout = self._adapter.build_command_timeout_text(
                        self._options.command_timeout
                    )
                    if timeout is not None:
                        connection.exec_driver_sql(timeout)
                for script in scripts:
                    self._adapter.execute_script(connection, script)
        except Exception:
            try:
                self._restore_session(connection)
            except Exception as restore_error:
                logger.error(f"Failed to restore session settings: {restore_error}")
            raise
        self._restore_session(connection)

    def _restore_session(self, connection: Connection) -> None:
        """Put back session settings the scripts changed, in a transaction of its own."""
        if self._restore_session_sql is None:
            return
        with _begin(connection):
            self._adapter.execute_script(connection, self._restore_session_sql)

    # === Plan ===

    @property
    def options(self) -> RespawnerOptions:
        return self._options

    @property
    def adapter(self) -> DbAdapter:
        return self._adapter

    @property
    def tables(self) -> frozenset[Table]:
        return self._tables

    @property
    def relationships(self) -> frozenset[Relationship]:
        """Foreign keys between in-scope tables."""
        return self._graph.relationships

    @property
    def graph(self) -> GraphBuilder:
        return self._graph

    @property
    def temporal_tables(self) -> tuple[TemporalTable, ...]:
        return self._temporal_tables

    @property
    def delete_sql(self) -> str:
        """The delete script replayed by every reset."""
        return self._delete_sql

    @property
    def reseed_sql(self) -> str | None:
        """The reseed script, or None when ``with_reseed`` is off.

        Empty when the database has no counters to reset, such as a SQLite file
        without AUTOINCREMENT tables.
        """
        return self._reseed_sql

    @property
    def restore_session_sql(self) -> str | None:
        """Statements run after every reset transaction, or None."""
        return self._restore_session_sql

    def __repr__(self) -> str:
        return (
            f"Respawner(adapter={self._adapter!r}, tables={len(self._tables)}, "
            f"temporal_tables={len(self._temporal_tables)})"
        )
