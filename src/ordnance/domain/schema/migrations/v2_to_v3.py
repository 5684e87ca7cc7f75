"""v2 -> v3: wrap every tracked field as a single-source multi-source field.

The whole record shares one inferred source, one timestamp and one composite
confidence. Fields the record never carried become zero-confidence default fields.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Final

from ordnance.domain.errors import MigrationError
from ordnance.domain.lineage import ConfidenceModel, LineageBuilder
from ordnance.domain.model import (
    FIELD_GROUPS,
    DataSource,
    LineageMetadata,
    SchemaVersion,
    SourceRecord,
    UnifiedWeapon,
    is_numeric,
    parse_data_source,
)
from ordnance.domain.model.documents import parse_timestamp, weapon_to_document
from ordnance.domain.reconciliation import ValidationResult, entity_id, unwrap
from ordnance.domain.schema.versions import as_mapping, detect_version, record_id

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from ordnance.domain.model import ConfidenceScore, MultiSourceField

DEFAULT_V2_QUALITY: Final = 0.5
# Top-level keys rebuilt by the migration; everything else is carried over verbatim.
_REBUILT_KEYS: Final[frozenset[str]] = frozenset(
    {
        "id",
        "name",
        "game",
        "category",
        *FIELD_GROUPS,
        "attachmentSlots",
        "bestFor",
        "playstyles",
        "imageUrl",
        "iconUrl",
        "lineage",
        "createdAt",
        "updatedAt",
        "sourceMetadata",
        "_lineageMetadata",
    }
)


def can_migrate_v2_to_v3(record: Mapping[str, Any]) -> bool:
    return isinstance(record, Mapping) and detect_version(record) is SchemaVersion.V2


def record_source(record: Mapping[str, Any]) -> DataSource:
    """The single provider a v2 record is attributed to."""

    metadata = as_mapping(record.get("sourceMetadata"))
    for candidate in (
        metadata.get("primarySource"),
        as_mapping(record.get("stats")).get("source"),
        as_mapping(record.get("meta")).get("source"),
    ):
        if candidate:
            return parse_data_source(candidate)
    return DataSource.UNKNOWN


def _record_timestamp(record: Mapping[str, Any], now: datetime) -> datetime:
    metadata = as_mapping(record.get("sourceMetadata"))
    for candidate in (
        metadata.get("lastFetchedAt"),
        as_mapping(record.get("stats")).get("updatedAt"),
    ):
        if candidate is not None:
            return parse_timestamp(candidate, default=now)
    return now


def _record_quality(record: Mapping[str, Any]) -> float:
    reliability = as_mapping(record.get("sourceMetadata")).get("reliability")
    return float(reliability) if is_numeric(reliability) else DEFAULT_V2_QUALITY


def _string_list(value: object) -> tuple[str, ...]:
    if isinstance(value, Sequence) and not isinstance(value, str):
        return tuple(item for item in value if isinstance(item, str))
    return ()


def migrate_v2_to_v3(
    record: Mapping[str, Any],
    *,
    confidence: ConfidenceModel | None = None,
) -> dict[str, Any]:
    """Return the v3 document for a v2 ``record``; the input is not mutated."""

    if not can_migrate_v2_to_v3(record):
        raise MigrationError(
            "Record is not a v2 record",
            entity_id=record_id(record),
            from_version=SchemaVersion.V2,
            to_version=SchemaVersion.V3,
        )
    model = confidence or ConfidenceModel()
    builder = LineageBuilder(confidence=model)
    now = model.now()
    source = record_source(record)
    timestamp = _record_timestamp(record, now)
    score: ConfidenceScore = model.calculate(source, timestamp, _record_quality(record))

    groups: dict[str, dict[str, MultiSourceField]] = {}
    for group_name, field_names in FIELD_GROUPS.items():
        values = as_mapping(record.get(group_name))
        wrapped: dict[str, MultiSourceField] = {}
        for name in field_names:
            value = values.get(name)
            if value is None:
                wrapped[name] = builder.default_field()
                continue
            observation = SourceRecord(
                source=source, value=copy.deepcopy(value), timestamp=timestamp
            )
            wrapped[name] = builder.single_source_field(observation, score)
        groups[group_name] = wrapped

    lineage = LineageMetadata(
        total_sources=1,
        average_confidence=score.value,
        conflict_count=0,
        stale_data_count=1 if model.is_stale(timestamp, now=now) else 0,
        last_updated=timestamp,
        last_validated=now,
        contributing_sources=(source,),
    )
    name = str(record.get("name") or "")
    game = str(record.get("game") or "")
    weapon = UnifiedWeapon(
        id=str(record.get("id") or entity_id(name, game)),
        name=name,
        game=game,
        category=str(record.get("category") or ""),
        stats=groups["stats"],
        ballistics=groups["ballistics"],
        meta=groups["meta"],
        lineage=lineage,
        created_at=parse_timestamp(record.get("createdAt"), default=timestamp),
        updated_at=now,
        attachment_slots={
            str(slot): _string_list(entries)
            for slot, entries in as_mapping(record.get("attachmentSlots")).items()
        },
        best_for=_string_list(record.get("bestFor")),
        playstyles=_string_list(record.get("playstyles")),
        image_url=record.get("imageUrl"),
        icon_url=record.get("iconUrl"),
    )
    document = weapon_to_document(weapon)
    for key, value in record.items():
        if key not in _REBUILT_KEYS:
            document.setdefault(key, copy.deepcopy(value))
    return document


def migrate_v2_to_v3_batch(
    records: Iterable[Mapping[str, Any]],
    *,
    confidence: ConfidenceModel | None = None,
) -> list[dict[str, Any]]:
    """Migrate every record or none: the first failure aborts the batch."""

    model = confidence or ConfidenceModel()
    migrated: list[dict[str, Any]] = []
    for index, record in enumerate(records):
        try:
            migrated.append(migrate_v2_to_v3(record, confidence=model))
        except (MigrationError, ValueError) as exc:
            raise MigrationError(
                f"Batch aborted at record {index}: {exc}",
                entity_id=record_id(record),
                from_version=SchemaVersion.V2,
                to_version=SchemaVersion.V3,
            ) from exc
    return migrated


def validate_v3_migration(before: Mapping[str, Any], after: Mapping[str, Any]) -> ValidationResult:
    """Check that a v3 document faithfully wraps the v2 record it came from."""

    errors: list[str] = []
    warnings: list[str] = []
    if detect_version(after) is not SchemaVersion.V3:
        errors.append("Migrated record is not detected as v3")
    for key in ("name", "game", "category"):
        if before.get(key) != after.get(key):
            errors.append(f"{key} changed during migration")
    for group_name, field_names in FIELD_GROUPS.items():
        original = as_mapping(before.get(group_name))
        migrated = as_mapping(after.get(group_name))
        for name in field_names:
            if name not in original or original[name] is None:
                continue
            if unwrap(migrated.get(name)) != original[name]:
                errors.append(f"{group_name}.{name} value changed during migration")
    lineage = as_mapping(after.get("lineage"))
    if lineage.get("totalSources") != 1:
        errors.append("Migrated lineage must have exactly one source")
    if lineage.get("staleDataCount"):
        warnings.append("Migrated record is built from stale data")
    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))


def create_migration_report(before: Mapping[str, Any], after: Mapping[str, Any]) -> dict[str, Any]:
    validation = validate_v3_migration(before, after)
    lineage = as_mapping(after.get("lineage"))
    wrapped = [
        f"{group_name}.{name}"
        for group_name in FIELD_GROUPS
        for name, value in as_mapping(after.get(group_name)).items()
        if isinstance(value, Mapping) and value.get("sources")
    ]
    return {
        "entityId": after.get("id"),
        "name": after.get("name"),
        "fromVersion": SchemaVersion.V2.value,
        "toVersion": SchemaVersion.V3.value,
        "primarySource": record_source(before).value,
        "confidence": lineage.get("averageConfidence"),
        "fieldsWrapped": wrapped,
        "valid": validation.valid,
        "errors": list(validation.errors),
        "warnings": list(validation.warnings),
    }

