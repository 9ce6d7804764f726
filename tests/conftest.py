"""Shared test fixtures for Respawn."""

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from sqlalchemy import Engine, text

from respawn.core.connection import DatabaseConnection

# Orders -> Customers, OrderLines -> Orders, a self-referencing tree,
# a mutual A <-> B cycle, and a migration-history table usually left alone.
SQLITE_SCHEMA = [
    "CREATE TABLE customers (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)",
    """CREATE TABLE orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER NOT NULL REFERENCES customers(id),
        total REAL
    )""",
    """CREATE TABLE order_lines (
        id INTEGER PRIMARY KEY,
        order_id INTEGER NOT NULL REFERENCES orders(id),
        sku TEXT
    )""",
    "CREATE TABLE nodes (id INTEGER PRIMARY KEY, parent_id INTEGER REFERENCES nodes(id))",
    "CREATE TABLE a (id INTEGER PRIMARY KEY, b_id INTEGER REFERENCES b(id))",
    "CREATE TABLE b (id INTEGER PRIMARY KEY, a_id INTEGER REFERENCES a(id))",
    "CREATE TABLE alembic_version (version_num TEXT PRIMARY KEY)",
]

SQLITE_ROWS = [
    "INSERT INTO customers (name) VALUES ('Ada'), ('Grace')",
    "INSERT INTO orders (customer_id, total) VALUES (1, 10.0), (1, 20.0), (2, 5.0)",
    "INSERT INTO order_lines (order_id, sku) VALUES (1, 'X-1'), (2, 'X-2'), (3, 'X-3')",
    "INSERT INTO nodes (id, parent_id) VALUES (1, NULL), (2, 1), (3, 2)",
    "INSERT INTO a (id, b_id) VALUES (1, NULL)",
    "INSERT INTO b (id, a_id) VALUES (1, 1)",
    "UPDATE a SET b_id = 1 WHERE id = 1",
    "INSERT INTO alembic_version (version_num) VALUES ('abc123')",
]

SQLITE_TABLES = ["customers", "orders", "order_lines", "nodes", "a", "b", "alembic_version"]


def _row_count(engine: Engine, table: str) -> int:
    with engine.connect() as conn:
        return conn.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar() or 0


def _seed_rows(engine: Engine) -> None:
    with engine.begin() as conn:
        for statement in SQLITE_ROWS:
            conn.execute(text(statement))


@pytest.fixture
def row_count() -> Callable[[Engine, str], int]:
    """Count rows in a table: ``row_count(engine, "orders")``."""
    return _row_count


@pytest.fixture
def seed_rows() -> Callable[[Engine], None]:
    """Insert the sample rows again: ``seed_rows(engine)``."""
    return _seed_rows


@pytest.fixture
def sqlite_tables() -> list[str]:
    """Names of every table in the sample SQLite schema."""
    return list(SQLITE_TABLES)


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """URL of a fresh SQLite file database (not yet created)."""
    return f"sqlite:///{tmp_path / 'respawn_test.db'}"


@pytest.fixture
def empty_sqlite_engine(sqlite_url: str) -> Generator[Engine, None, None]:
    """Engine on an SQLite database without tables, foreign keys enforced."""
    connection = DatabaseConnection(sqlite_url)
    yield connection.engine
    connection.close()


@pytest.fixture
def sqlite_engine(empty_sqlite_engine: Engine) -> Engine:
    """Engine on an SQLite database with the sample schema and rows."""
    with empty_sqlite_engine.begin() as conn:
        for statement in SQLITE_SCHEMA:
            conn.execute(text(statement))
    _seed_rows(empty_sqlite_engine)
    return empty_sqlite_engine


def _psycopg_available() -> bool:
    """Check if psycopg is installed."""
    try:
        import psycopg  # noqa: F401

        return True
    except ImportError:
        return False


def _postgresql_connectable(url: str) -> bool:
    """Check if we can connect to PostgreSQL."""
    if not _psycopg_available():
        return False
    try:
        conn = DatabaseConnection(url)
        result = conn.test_connection()
        conn.close()
        return result
    except Exception:
        return False


# Skip marker for tests requiring PostgreSQL
requires_postgresql = pytest.mark.skipif(
    not _psycopg_available(),
    reason="psycopg not installed (install with: pip install respawn[postgresql])",
)


@pytest.fixture
def postgresql_url() -> str:
    """Get PostgreSQL URL from environment or use default.

    Tests using this fixture should also use @requires_postgresql marker.
    """
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        # Default to local PostgreSQL
        url = "postgresql://localhost/respawn_test"

    # Skip if psycopg not available
    if not _psycopg_available():
        pytest.skip("psycopg not installed")

    # Skip if can't connect (no PostgreSQL server)
    if not _postgresql_connectable(url):
        pytest.skip(f"Cannot connect to PostgreSQL at {url}")

    return url


# Re-export for use in test files
__all__ = ["requires_postgresql"]
