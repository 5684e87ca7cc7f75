"""SQLAlchemy adapter package for Ordnance."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    metadata,
    schema_migration_table,
    weapon_document_table,
)
from .repositories import SqlAlchemyMigrationLog, SqlAlchemyWeaponRepository
from .unit_of_work import (
    SqlAlchemyWeaponUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyMigrationLog",
    "SqlAlchemyWeaponRepository",
    "SqlAlchemyWeaponUnitOfWork",
    "StartupError",
    "create_all_tables",
    "metadata",
    "schema_migration_table",
    "shutdown",
    "startup",
    "weapon_document_table",
]
