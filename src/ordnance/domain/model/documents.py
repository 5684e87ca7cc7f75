"""Conversion between domain objects and persisted camelCase documents.

Timestamps are stored as epoch milliseconds; in memory they are aware UTC datetimes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from .entity import FIELD_GROUPS, UnifiedWeapon
from .enums import ResolutionStrategy
from .lineage import (
    ConfidenceScore,
    ConflictDetail,
    ConflictValue,
    LineageMetadata,
    MultiSourceField,
    SourceRecord,
)
from .sources import parse_data_source

if TYPE_CHECKING:
    from .values import FieldValue

type Document = dict[str, Any]


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def parse_timestamp(value: object, *, default: datetime | None = None) -> datetime:
    """Parse epoch milliseconds, ISO-8601 strings, or datetimes into aware UTC datetimes."""

    match value:
        case datetime():
            return value if value.tzinfo else value.replace(tzinfo=UTC)
        case bool():
            pass
        case int() | float():
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        case str() if value.strip():
            normalized = value.strip()
            if normalized.endswith("Z"):
                normalized = normalized[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(normalized)
            except ValueError:
                pass
            else:
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        case _:
            pass
    if default is None:
        raise ValueError(f"Unparseable timestamp: {value!r}")
    return default


def source_record_to_document(record: SourceRecord) -> Document:
    document: Document = {
        "source": record.source.value,
        "value": record.value,
        "timestamp": to_epoch_ms(record.timestamp),
    }
    if record.reference is not None:
        document["reference"] = record.reference
    if record.notes is not None:
        document["notes"] = record.notes
    return document


def source_record_from_document(document: Mapping[str, Any]) -> SourceRecord:
    return SourceRecord(
        source=parse_data_source(document.get("source")),
        value=cast("FieldValue", document.get("value")),
        timestamp=parse_timestamp(document.get("timestamp")),
        reference=document.get("reference"),
        notes=document.get("notes"),
    )


def confidence_to_document(score: ConfidenceScore) -> Document:
    return {
        "value": score.value,
        "sourceReliability": score.source_reliability,
        "freshness": score.freshness,
        "quality": score.quality,
        "calculatedAt": to_epoch_ms(score.calculated_at),
    }


def confidence_from_document(document: Mapping[str, Any]) -> ConfidenceScore:
    return ConfidenceScore(
        source_reliability=float(document.get("sourceReliability", 0.0)),
        freshness=float(document.get("freshness", 0.0)),
        quality=float(document.get("quality", 0.0)),
        calculated_at=parse_timestamp(document.get("calculatedAt")),
    )


def _conflict_to_document(detail: ConflictDetail) -> Document:
    document: Document = {
        "field": detail.field,
        "values": [
            {
                "source": item.source.value,
                "value": item.value,
                "timestamp": to_epoch_ms(item.timestamp),
            }
            for item in detail.values
        ],
        "detectedAt": to_epoch_ms(detail.detected_at),
        "resolved": detail.resolved,
    }
    if detail.resolution is not None:
        document["resolution"] = detail.resolution.value
    return document


def _conflict_from_document(document: Mapping[str, Any]) -> ConflictDetail:
    resolution = document.get("resolution")
    return ConflictDetail(
        field=str(document.get("field", "")),
        values=tuple(
            ConflictValue(
                source=parse_data_source(item.get("source")),
                value=item.get("value"),
                timestamp=parse_timestamp(item.get("timestamp")),
            )
            for item in document.get("values", ())
        ),
        detected_at=parse_timestamp(document.get("detectedAt")),
        resolved=bool(document.get("resolved", False)),
        resolution=ResolutionStrategy(resolution) if resolution else None,
    )


def field_to_document(value: MultiSourceField) -> Document:
    document: Document = {
        "currentValue": value.current_value,
        "primarySource": value.primary_source.value,
        "confidence": confidence_to_document(value.confidence),
        "lastUpdated": to_epoch_ms(value.last_updated),
        "hasConflict": value.has_conflict,
        "sources": [source_record_to_document(record) for record in value.sources],
    }
    if value.conflict_details is not None:
        document["conflictDetails"] = _conflict_to_document(value.conflict_details)
    return document


def field_from_document(document: Mapping[str, Any]) -> MultiSourceField:
    details = document.get("conflictDetails")
    return MultiSourceField(
        sources=tuple(source_record_from_document(item) for item in document.get("sources", ())),
        current_value=document.get("currentValue"),
        primary_source=parse_data_source(document.get("primarySource")),
        confidence=confidence_from_document(document.get("confidence", {})),
        last_updated=parse_timestamp(document.get("lastUpdated")),
        has_conflict=bool(document.get("hasConflict", False)),
        conflict_details=_conflict_from_document(details) if details else None,
    )


def lineage_to_document(lineage: LineageMetadata) -> Document:
    return {
        "totalSources": lineage.total_sources,
        "averageConfidence": lineage.average_confidence,
        "conflictCount": lineage.conflict_count,
        "staleDataCount": lineage.stale_data_count,
        "lastUpdated": to_epoch_ms(lineage.last_updated),
        "lastValidated": to_epoch_ms(lineage.last_validated),
        "contributingSources": [source.value for source in lineage.contributing_sources],
    }


def lineage_from_document(document: Mapping[str, Any]) -> LineageMetadata:
    return LineageMetadata(
        total_sources=int(document.get("totalSources", 0)),
        average_confidence=float(document.get("averageConfidence", 0.0)),
        conflict_count=int(document.get("conflictCount", 0)),
        stale_data_count=int(document.get("staleDataCount", 0)),
        last_updated=parse_timestamp(document.get("lastUpdated")),
        last_validated=parse_timestamp(document.get("lastValidated")),
        contributing_sources=tuple(
            parse_data_source(item) for item in document.get("contributingSources", ())
        ),
    )


def weapon_to_document(weapon: UnifiedWeapon) -> Document:
    """Serialize a unified weapon to its v3 document form."""

    document: Document = {
        "id": weapon.id,
        "name": weapon.name,
        "game": weapon.game,
        "category": weapon.category,
    }
    for group_name in FIELD_GROUPS:
        document[group_name] = {
            name: field_to_document(value) for name, value in weapon.group(group_name).items()
        }
    document["attachmentSlots"] = {
        slot: list(entries) for slot, entries in weapon.attachment_slots.items()
    }
    document["bestFor"] = list(weapon.best_for)
    document["playstyles"] = list(weapon.playstyles)
    if weapon.image_url is not None:
        document["imageUrl"] = weapon.image_url
    if weapon.icon_url is not None:
        document["iconUrl"] = weapon.icon_url
    document["lineage"] = lineage_to_document(weapon.lineage)
    document["createdAt"] = to_epoch_ms(weapon.created_at)
    document["updatedAt"] = to_epoch_ms(weapon.updated_at)
    return document


def _string_tuple(value: object) -> tuple[str, ...]:
    if isinstance(value, Sequence) and not isinstance(value, str):
        return tuple(item for item in value if isinstance(item, str))
    return ()


def weapon_from_document(document: Mapping[str, Any]) -> UnifiedWeapon:
    """Rebuild a unified weapon from a v3 document."""

    groups = {
        group_name: {
            name: field_from_document(value)
            for name, value in (document.get(group_name) or {}).items()
            if isinstance(value, Mapping)
        }
        for group_name in FIELD_GROUPS
    }
    slots = document.get("attachmentSlots") or {}
    return UnifiedWeapon(
        id=str(document["id"]),
        name=str(document.get("name", "")),
        game=str(document.get("game", "")),
        category=str(document.get("category", "")),
        stats=groups["stats"],
        ballistics=groups["ballistics"],
        meta=groups["meta"],
        lineage=lineage_from_document(document.get("lineage", {})),
        created_at=parse_timestamp(document.get("createdAt")),
        updated_at=parse_timestamp(document.get("updatedAt")),
        attachment_slots={slot: _string_tuple(entries) for slot, entries in slots.items()},
        best_for=_string_tuple(document.get("bestFor")),
        playstyles=_string_tuple(document.get("playstyles")),
        image_url=document.get("imageUrl"),
        icon_url=document.get("iconUrl"),
    )
