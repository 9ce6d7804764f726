"""Input parsing utilities for CLI commands."""

from respawn.core.options import RespawnerOptions
from respawn.core.types import Table


def parse_tables(values: list[str] | None) -> tuple[Table, ...]:
    """Parse table arguments.

    Examples:
        ["orders"] -> (Table(None, "orders"),)
        ["sales.orders"] -> (Table("sales", "orders"),)

    Raises:
        ValueError: If a value is empty or malformed
    """
    return tuple(Table.parse(value) for value in values or [])


def build_options(
    schemas: list[str] | None,
    exclude_schemas: list[str] | None,
    tables: list[str] | None,
    ignore_tables: list[str] | None,
    reseed: bool,
    no_temporal: bool,
    timeout: int | None,
) -> RespawnerOptions:
    """Build respawner options from command-line arguments."""
    return RespawnerOptions(
        schemas_to_include=tuple(schemas or ()),
        schemas_to_exclude=tuple(exclude_schemas or ()),
        tables_to_include=parse_tables(tables),
        tables_to_ignore=parse_tables(ignore_tables),
        with_reseed=reseed,
        check_temporal_tables=not no_temporal,
        command_timeout=timeout,
    )
