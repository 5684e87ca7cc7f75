"""Schema migration audit records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .enums import SchemaVersion


@dataclass(frozen=True, slots=True, kw_only=True)
class MigrationRecord:
    """Append-only audit entry for one migration step of one entity."""

    entity_id: str
    from_version: SchemaVersion
    to_version: SchemaVersion
    timestamp: datetime
    success: bool
    entity_name: str | None = None
    error: str | None = None
    duration_ms: float | None = None
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True, kw_only=True)
class MigrationStats:
    total: int
    by_version: Mapping[SchemaVersion, int]
    migrated: int
    failed: int
    pending: int
    last_migration: datetime | None = None
    average_duration_ms: float | None = None
