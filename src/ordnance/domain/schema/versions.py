"""Schema generation detection, validation, and migration bookkeeping.

Generations are ordered ``v1 < v2 < v3``:
- v1: flat scalar fields, no provenance
- v2: flat scalars plus a source label/reliability side channel
- v3: every tracked field wrapped as a multi-source field, plus entity lineage

Migration paths only move forward, one generation per step.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from itertools import batched
from statistics import fmean
from typing import TYPE_CHECKING, Any, Final

from ordnance.domain.errors import SchemaVersionError
from ordnance.domain.model import (
    LATEST_SCHEMA_VERSION,
    STAT_FIELDS,
    MigrationStats,
    SchemaVersion,
    is_numeric,
)
from ordnance.domain.reconciliation import ValidationResult, validate_weapon_document
from ordnance.domain.settings import MigrationConfig

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ordnance.domain.model import MigrationRecord
    from ordnance.domain.ports import MigrationLog

log = logging.getLogger(__name__)

REQUIRED_LINEAGE_FIELDS: Final[tuple[str, ...]] = (
    "totalSources",
    "averageConfidence",
    "conflictCount",
    "staleDataCount",
    "lastUpdated",
    "lastValidated",
)
REQUIRED_WRAPPER_FIELDS: Final[tuple[str, ...]] = (
    "currentValue",
    "primarySource",
    "confidence",
    "sources",
)


def parse_version(label: SchemaVersion | str) -> SchemaVersion:
    if isinstance(label, SchemaVersion):
        return label
    try:
        return SchemaVersion(label.strip().lower())
    except ValueError as exc:
        raise SchemaVersionError(f"Unknown schema version: {label!r}") from exc


def as_mapping(value: object) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def record_id(record: object) -> str | None:
    """Best available identifier of a raw record, for logs and audit entries."""

    if isinstance(record, Mapping):
        identifier = record.get("id") or record.get("name")
        return str(identifier) if identifier is not None else None
    return None


def _tracked_stats(record: Mapping[str, Any]) -> dict[str, Any]:
    stats = as_mapping(record.get("stats"))
    return {name: stats[name] for name in STAT_FIELDS if name in stats}


def _is_wrapped(value: object) -> bool:
    return isinstance(value, Mapping) and "currentValue" in value


def has_source_side_channel(record: Mapping[str, Any]) -> bool:
    """Whether a record carries v2-style source attribution."""

    return (
        isinstance(record.get("sourceMetadata"), Mapping)
        or "source" in as_mapping(record.get("stats"))
        or "source" in as_mapping(record.get("meta"))
    )


def detect_version(record: Mapping[str, Any]) -> SchemaVersion:
    """Structurally classify ``record``; ambiguous records default to v1 with a warning."""

    if not isinstance(record, Mapping):
        raise SchemaVersionError(f"Cannot detect the schema of a {type(record).__name__}")

    lineage = record.get("lineage")
    stats = _tracked_stats(record)
    if (
        isinstance(lineage, Mapping)
        and is_numeric(lineage.get("averageConfidence"))
        and stats
        and all(_is_wrapped(value) for value in stats.values())
    ):
        return SchemaVersion.V3

    side_channel = has_source_side_channel(record)
    if side_channel and not isinstance(lineage, Mapping):
        return SchemaVersion.V2

    if (
        not side_channel
        and lineage is None
        and stats
        and all(value is None or is_numeric(value) for value in stats.values())
    ):
        return SchemaVersion.V1

    log.warning(
        "Could not detect schema version for %s; assuming %s",
        record.get("id") or record.get("name") or "<unnamed record>",
        SchemaVersion.V1,
    )
    return SchemaVersion.V1


def _v1_checks(record: Mapping[str, Any], errors: list[str]) -> None:
    if "lineage" in record:
        errors.append("v1 records must not carry lineage")
    if "sourceMetadata" in record:
        errors.append("v1 records must not carry sourceMetadata")
    for name, value in _tracked_stats(record).items():
        if value is not None and not is_numeric(value):
            errors.append(f"v1 stats.{name} must be a plain number")


def _v2_checks(record: Mapping[str, Any], errors: list[str], warnings: list[str]) -> None:
    if isinstance(record.get("lineage"), Mapping):
        errors.append("v2 records must not carry full lineage")
    if not has_source_side_channel(record):
        warnings.append("v2 record has no source tracking")


def _v3_checks(record: Mapping[str, Any], errors: list[str]) -> None:
    lineage = record.get("lineage")
    if not isinstance(lineage, Mapping):
        errors.append("v3 records require lineage")
    else:
        errors.extend(
            f"lineage.{name} is required"
            for name in REQUIRED_LINEAGE_FIELDS
            if name not in lineage
        )
    for name, value in _tracked_stats(record).items():
        if not isinstance(value, Mapping):
            errors.append(f"stats.{name} must be a multi-source field")
            continue
        missing = [key for key in REQUIRED_WRAPPER_FIELDS if key not in value]
        if missing:
            errors.append(f"stats.{name} is missing {', '.join(missing)}")
        elif not isinstance(value["sources"], list):
            errors.append(f"stats.{name}.sources must be a list")


def validate_schema(
    record: Mapping[str, Any], expected: SchemaVersion | str
) -> ValidationResult:
    """Generic document checks plus checks specific to ``expected``."""

    expected_version = parse_version(expected)
    base = validate_weapon_document(record)
    errors: list[str] = []
    warnings: list[str] = []
    detected = detect_version(record)
    if detected is not expected_version:
        errors.append(f"Expected schema {expected_version} but detected {detected}")
    match expected_version:
        case SchemaVersion.V1:
            _v1_checks(record, errors)
        case SchemaVersion.V2:
            _v2_checks(record, errors, warnings)
        case SchemaVersion.V3:
            _v3_checks(record, errors)
    return base.merged_with(ValidationResult(errors=tuple(errors), warnings=tuple(warnings)))


def get_migration_path(
    from_version: SchemaVersion | str, to_version: SchemaVersion | str
) -> tuple[SchemaVersion, ...]:
    """Every generation from ``from_version`` to ``to_version`` inclusive.

    Raises ``SchemaVersionError`` for unknown versions or backward requests.
    """

    start = parse_version(from_version)
    end = parse_version(to_version)
    if end < start:
        raise SchemaVersionError(f"Cannot migrate backwards from {start} to {end}")
    return tuple(version for version in SchemaVersion if start <= version <= end)


def needs_migration(
    record: Mapping[str, Any], target: SchemaVersion | str = LATEST_SCHEMA_VERSION
) -> bool:
    return detect_version(record) < parse_version(target)


@dataclass(frozen=True, slots=True)
class SchemaVersionManager:
    """Migration audit bookkeeping on top of the pure detection helpers."""

    migration_log: MigrationLog
    config: MigrationConfig = field(default_factory=MigrationConfig)

    detect_version = staticmethod(detect_version)
    validate_schema = staticmethod(validate_schema)
    needs_migration = staticmethod(needs_migration)
    get_migration_path = staticmethod(get_migration_path)

    @staticmethod
    def get_latest_version() -> SchemaVersion:
        return LATEST_SCHEMA_VERSION

    def record_migration(self, record: MigrationRecord) -> None:
        self.migration_log.append_batch((record,))

    def record_migrations(self, records: Iterable[MigrationRecord]) -> int:
        """Append ``records`` in batches bounded by ``audit_batch_size``."""

        written = 0
        for chunk in batched(records, self.config.audit_batch_size):
            self.migration_log.append_batch(chunk)
            written += len(chunk)
            log.debug("Flushed %d migration records (%d total)", len(chunk), written)
        return written

    def get_migration_history(self, entity_id: str) -> list[MigrationRecord]:
        return self.migration_log.history(entity_id)

    def get_recent_migrations(self, limit: int = 50) -> list[MigrationRecord]:
        return self.migration_log.recent(limit)

    def get_migration_stats(self, *, pending: int = 0) -> MigrationStats:
        """Summarise the audit log; ``pending`` is supplied by the caller's store scan."""

        records: Sequence[MigrationRecord] = list(self.migration_log.iter_all())
        successful = [record for record in records if record.success]
        by_version = Counter(record.to_version for record in successful)
        durations = [
            record.duration_ms for record in records if record.duration_ms is not None
        ]
        return MigrationStats(
            total=len(records),
            by_version=dict(by_version),
            migrated=len({record.entity_id for record in successful}),
            failed=len(records) - len(successful),
            pending=pending,
            last_migration=max((record.timestamp for record in records), default=None),
            average_duration_ms=fmean(durations) if durations else None,
        )
