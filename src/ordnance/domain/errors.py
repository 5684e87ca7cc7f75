"""Fatal error taxonomy for reconciliation and schema migration.

Reportable problems (validation violations, identity mismatches) are collected into
result objects instead and never raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import SchemaVersion


class ReconciliationError(RuntimeError):
    """Base class for fatal reconciliation failures."""


class NoSourcesError(ReconciliationError, ValueError):
    def __init__(self, message: str = "no sources provided") -> None:
        super().__init__(message)


class EmptyFieldError(ReconciliationError, ValueError):
    """Raised when a multi-source field is built without any source records."""


class UnknownStrategyError(ReconciliationError, ValueError):
    def __init__(self, strategy: object) -> None:
        super().__init__(f"unknown resolution strategy: {strategy!r}")
        self.strategy = strategy


class ZeroWeightError(ReconciliationError):
    def __init__(self, field_name: str | None = None) -> None:
        suffix = f" for field {field_name}" if field_name else ""
        super().__init__(f"total weight is zero{suffix}")
        self.field_name = field_name


class SchemaVersionError(ReconciliationError, ValueError):
    """Raised for unknown versions or non-forward migration requests."""


class MigrationError(ReconciliationError):
    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        from_version: SchemaVersion | None = None,
        to_version: SchemaVersion | None = None,
    ) -> None:
        super().__init__(message)
        self.entity_id = entity_id
        self.from_version = from_version
        self.to_version = to_version
