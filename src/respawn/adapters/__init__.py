"""Database adapters.

One adapter per supported engine. Pick one by dialect name or pass an instance:

Example:
    >>> from respawn.adapters import get_adapter
    >>> adapter = get_adapter("postgresql")
    >>> adapter = get_adapter(SqlServerDbAdapter())
"""

from respawn.adapters.base import DbAdapter
from respawn.adapters.mysql import MySqlDbAdapter
from respawn.adapters.postgres import PostgresDbAdapter
from respawn.adapters.sqlite import SqliteDbAdapter
from respawn.adapters.sqlserver import SqlServerDbAdapter
from respawn.core.types import DialectName
from respawn.exceptions import UnsupportedDialectError

__all__ = [
    "DbAdapter",
    "MySqlDbAdapter",
    "PostgresDbAdapter",
    "SqlServerDbAdapter",
    "SqliteDbAdapter",
    "get_adapter",
]

ADAPTERS: dict[str, type[DbAdapter]] = {
    DialectName.POSTGRESQL: PostgresDbAdapter,
    DialectName.MSSQL: SqlServerDbAdapter,
    DialectName.MYSQL: MySqlDbAdapter,
    DialectName.MARIADB: MySqlDbAdapter,
    DialectName.SQLITE: SqliteDbAdapter,
}


def get_adapter(adapter: str | DbAdapter) -> DbAdapter:
    """Get an adapter by SQLAlchemy backend name or return the adapter if already instantiated.

    Args:
        adapter: Backend name ("postgresql", "mssql", "mysql", "mariadb", "sqlite")
            or DbAdapter instance.

    Returns:
        DbAdapter instance.

    Raises:
        UnsupportedDialectError: If no adapter handles the backend.
    """
    if isinstance(adapter, DbAdapter):
        return adapter

    adapter_cls = ADAPTERS.get(adapter)
    if adapter_cls is None:
        raise UnsupportedDialectError(adapter, DialectName.values())
    return adapter_cls()
