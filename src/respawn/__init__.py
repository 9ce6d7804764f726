"""Respawn - reset a test database to a clean state without dropping schema.

Respawn reads the tables and foreign keys of a live database, works out an
order in which every table can be emptied without violating a constraint, and
renders a delete script once. Each reset replays that script in a transaction.

Example:
    from respawn import Respawner, RespawnerOptions

    respawner = Respawner.create(
        "postgresql://localhost/app_test",
        RespawnerOptions(tables_to_ignore=["alembic_version"], with_reseed=True),
    )

    # Inspect what will run
    print(respawner.delete_sql)

    # Reset between tests (URL, Engine, or open Connection)
    respawner.reset("postgresql://localhost/app_test")
"""

from respawn.adapters import (
    DbAdapter,
    MySqlDbAdapter,
    PostgresDbAdapter,
    SqliteDbAdapter,
    SqlServerDbAdapter,
    get_adapter,
)
from respawn.core.options import RespawnerOptions
from respawn.core.respawner import Respawner
from respawn.core.types import DialectName, Relationship, Table, TemporalTable
from respawn.exceptions import (
    AdapterMismatchError,
    ConnectionError,
    NoTablesFoundError,
    RespawnError,
    UnsupportedDialectError,
    VersioningRestoreError,
)
from respawn.graph import GraphBuilder

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "Respawner",
    "RespawnerOptions",
    "GraphBuilder",
    # Catalog types
    "Table",
    "Relationship",
    "TemporalTable",
    "DialectName",
    # Adapters
    "DbAdapter",
    "PostgresDbAdapter",
    "SqlServerDbAdapter",
    "MySqlDbAdapter",
    "SqliteDbAdapter",
    "get_adapter",
    # Exceptions
    "RespawnError",
    "ConnectionError",
    "AdapterMismatchError",
    "UnsupportedDialectError",
    "NoTablesFoundError",
    "VersioningRestoreError",
]
