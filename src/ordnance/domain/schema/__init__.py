"""Schema generations and forward migrations."""

from __future__ import annotations

from .migrations import MigrationOutcome, migrate_to
from .versions import (
    SchemaVersionManager,
    detect_version,
    get_migration_path,
    needs_migration,
    parse_version,
    validate_schema,
)

__all__ = [
    "MigrationOutcome",
    "SchemaVersionManager",
    "detect_version",
    "get_migration_path",
    "migrate_to",
    "needs_migration",
    "parse_version",
    "validate_schema",
]
