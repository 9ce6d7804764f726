"""Respawner options."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from respawn.adapters.base import DbAdapter
from respawn.core.types import Table


class RespawnerOptions(BaseModel):
    """Options controlling which tables are reset and how.

    Table filters accept ``Table`` values or strings (``"name"`` or ``"schema.name"``).
    A filter without schema matches the table name in every schema.
    """

    schemas_to_include: tuple[str, ...] = Field(
        default=(), description="Only reset tables in these schemas"
    )
    schemas_to_exclude: tuple[str, ...] = Field(
        default=(), description="Never reset tables in these schemas"
    )
    tables_to_include: tuple[Table, ...] = Field(
        default=(), description="Only reset these tables"
    )
    tables_to_ignore: tuple[Table, ...] = Field(
        default=(), description="Never reset these tables (e.g. migration history)"
    )
    with_reseed: bool = Field(
        default=False, description="Reset identity/auto-increment counters after deleting"
    )
    check_temporal_tables: bool = Field(
        default=False, description="Suspend system versioning on temporal tables during reset"
    )
    command_timeout: int | None = Field(
        default=None, gt=0, description="Per-command timeout in seconds"
    )
    db_adapter: DbAdapter | None = Field(
        default=None,
        description="Engine adapter; inferred from the connection's dialect when unset",
    )

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("schemas_to_include", "schemas_to_exclude", mode="before")
    @classmethod
    def _coerce_schemas(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("tables_to_include", "tables_to_ignore", mode="before")
    @classmethod
    def _coerce_tables(cls, value: Any) -> Any:
        if isinstance(value, (str, Table)):
            value = [value]
        if value is None:
            return ()
        return tuple(Table.parse(v) if isinstance(v, str) else v for v in value)
