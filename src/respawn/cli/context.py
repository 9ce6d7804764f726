"""CLI context management for database connections and shared state."""

import os
from dataclasses import dataclass, field

from sqlalchemy import Engine, make_url
from sqlalchemy.exc import ArgumentError

from respawn.core.connection import DatabaseConnection

DATABASE_URL_ENV = "RESPAWN_DATABASE_URL"


def get_database_url(url: str | None) -> str | None:
    """Resolve database URL from CLI arg or environment variable.

    Priority:
    1. Explicit URL argument
    2. RESPAWN_DATABASE_URL environment variable
    """
    if url:
        return url
    return os.getenv(DATABASE_URL_ENV)


@dataclass
class CLIContext:
    """Shared context for CLI commands.

    Manages database connection lifecycle and output preferences.
    """

    database_url: str | None
    echo: bool
    json_output: bool
    _connection: DatabaseConnection | None = field(default=None, init=False, repr=False)

    def get_engine(self) -> Engine:
        """Get or create the database engine (lazy initialization).

        Raises:
            ValueError: If no database URL was given
        """
        if self.database_url is None:
            raise ValueError(
                f"No database URL. Pass --database or set the {DATABASE_URL_ENV} "
                f"environment variable."
            )
        if self._connection is None:
            self._connection = DatabaseConnection(self.database_url, echo=self.echo)
        return self._connection.engine

    @property
    def display_url(self) -> str | None:
        """Database URL with any password masked, for prompts and messages."""
        if self.database_url is None:
            return None
        try:
            return make_url(self.database_url).render_as_string(hide_password=True)
        except ArgumentError:
            return self.database_url

    def close(self) -> None:
        """Dispose of the engine if one was created."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
