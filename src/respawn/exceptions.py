"""Custom exceptions for Respawn.

Error messages say what went wrong AND how to fix it. Database errors raised
by the driver while discovering or resetting are never wrapped: they reach the
caller as the original ``sqlalchemy.exc.DBAPIError``.
"""

from __future__ import annotations

from typing import Any


class RespawnError(Exception):
    """Base exception for all Respawn errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConnectionError(RespawnError):
    """Failed to connect to the database."""

    pass


class UnsupportedDialectError(RespawnError):
    """No adapter exists for the requested database dialect."""

    def __init__(self, dialect: str, supported: list[str]) -> None:
        message = (
            f"Unsupported database dialect '{dialect}'. "
            f"Supported dialects: {', '.join(supported)}"
        )
        super().__init__(message, {"dialect": dialect, "supported": supported})
        self.dialect = dialect
        self.supported = supported


class AdapterMismatchError(RespawnError):
    """The configured adapter cannot drive the requested connection."""

    def __init__(self, adapter_dialect: str, connection_dialect: str) -> None:
        message = (
            f"Adapter for '{adapter_dialect}' cannot be used with a '{connection_dialect}' "
            f"database. Pass a matching db_adapter, or leave it unset to pick one from the URL."
        )
        super().__init__(
            message,
            {"adapter_dialect": adapter_dialect, "connection_dialect": connection_dialect},
        )
        self.adapter_dialect = adapter_dialect
        self.connection_dialect = connection_dialect


class NoTablesFoundError(RespawnError):
    """Table discovery returned nothing to reset."""

    def __init__(
        self,
        schemas_to_include: list[str] | None = None,
        schemas_to_exclude: list[str] | None = None,
    ) -> None:
        message = (
            "No tables found. Ensure your target database has at least one non-ignored "
            "table to reset. Consider initializing the database and/or running migrations, "
            "and check the schema and table filters."
        )
        super().__init__(
            message,
            {
                "schemas_to_include": schemas_to_include or [],
                "schemas_to_exclude": schemas_to_exclude or [],
            },
        )


class VersioningRestoreError(RespawnError):
    """Re-enabling system versioning failed after the delete step had already failed.

    Both failures are kept: ``delete_error`` is the original failure of the delete
    script and ``restore_error`` is the failure of the turn-on-versioning step.
    The exception is chained from ``restore_error``.
    """

    def __init__(self, delete_error: BaseException, restore_error: BaseException) -> None:
        message = (
            f"Reset failed and system versioning could not be turned back on. "
            f"Delete error: {delete_error}. Restore error: {restore_error}. "
            f"Re-enable SYSTEM_VERSIONING manually before the next run."
        )
        super().__init__(
            message,
            {
                "delete_error": repr(delete_error),
                "restore_error": repr(restore_error),
            },
        )
        self.delete_error = delete_error
        self.restore_error = restore_error
