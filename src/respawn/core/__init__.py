"""Core components for Respawn."""

from respawn.core.connection import DatabaseConnection
from respawn.core.types import DialectName, Relationship, Table, TemporalTable

__all__ = [
    "DatabaseConnection",
    "DialectName",
    "Table",
    "Relationship",
    "TemporalTable",
]
