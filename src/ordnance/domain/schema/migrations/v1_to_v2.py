"""v1 -> v2: add a source-attribution shell to flat records.

The originating provider is inferred from which field clusters a record carries.
Original fields are never modified.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Final

from ordnance.domain.clock import utcnow
from ordnance.domain.errors import MigrationError
from ordnance.domain.model import DataSource, SchemaVersion
from ordnance.domain.model.documents import parse_timestamp, to_epoch_ms
from ordnance.domain.schema.versions import as_mapping, detect_version, record_id

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

DEFAULT_V2_RELIABILITY: Final = 0.5
V2_ADDED_FIELDS: Final[tuple[str, ...]] = (
    "stats.source",
    "stats.updatedAt",
    "meta.source",
    "meta.lastUpdated",
    "sourceMetadata",
    "_lineageMetadata",
)


def _non_empty(value: object) -> bool:
    if isinstance(value, Mapping | Sequence) and not isinstance(value, str):
        return len(value) > 0
    return value is not None and value != ""


def infer_source(record: Mapping[str, Any]) -> DataSource:
    """Guess the provider of a v1 record from the field clusters it carries."""

    for key in ("imageUrl", "iconUrl"):
        url = record.get(key)
        if isinstance(url, str) and "codarmory" in url.lower():
            return DataSource.CODARMORY
    meta = as_mapping(record.get("meta"))
    if _non_empty(meta.get("tier")) and _non_empty(meta.get("popularity")):
        return DataSource.WZSTATS
    ballistics = as_mapping(record.get("ballistics"))
    if _non_empty(ballistics.get("damageRanges")) and _non_empty(ballistics.get("ttk")):
        return DataSource.CODARMORY
    if _non_empty(record.get("attachmentSlots")):
        return DataSource.CODARMORY
    if _non_empty(record.get("bestFor")) or _non_empty(record.get("playstyles")):
        return DataSource.MANUAL
    return DataSource.UNKNOWN


def can_migrate_v1_to_v2(record: Mapping[str, Any]) -> bool:
    return isinstance(record, Mapping) and detect_version(record) is SchemaVersion.V1


def _observed_at(record: Mapping[str, Any], now: datetime) -> datetime:
    meta = as_mapping(record.get("meta"))
    for candidate in (meta.get("lastUpdated"), record.get("updatedAt")):
        if candidate is not None:
            return parse_timestamp(candidate, default=now)
    return now


def migrate_v1_to_v2(
    record: Mapping[str, Any], *, now: datetime | None = None
) -> dict[str, Any]:
    """Return a v2 copy of ``record``; the input is not mutated."""

    if not can_migrate_v1_to_v2(record):
        raise MigrationError(
            "Record is not a v1 record",
            entity_id=record_id(record),
            from_version=SchemaVersion.V1,
            to_version=SchemaVersion.V2,
        )
    moment = now or utcnow()
    source = infer_source(record)
    observed = _observed_at(record, moment)
    observed_ms = to_epoch_ms(observed)

    migrated: dict[str, Any] = copy.deepcopy(dict(record))
    stats = dict(migrated.get("stats") or {})
    stats["source"] = source.value
    stats["updatedAt"] = observed_ms
    migrated["stats"] = stats
    meta = dict(migrated.get("meta") or {})
    meta["source"] = source.value
    backfilled: list[str] = []
    if meta.get("lastUpdated") is None:
        meta["lastUpdated"] = observed.isoformat()
        backfilled.append("meta.lastUpdated")
    migrated["meta"] = meta
    migrated["sourceMetadata"] = {
        "primarySource": source.value,
        "lastFetchedAt": observed_ms,
        "reliability": DEFAULT_V2_RELIABILITY,
    }
    migrated["_lineageMetadata"] = {
        "averageConfidence": DEFAULT_V2_RELIABILITY,
        "minConfidence": DEFAULT_V2_RELIABILITY,
        "maxConfidence": DEFAULT_V2_RELIABILITY,
        "totalSources": 1,
        "sourcesByName": {source.value: 1},
        "lastUpdate": observed_ms,
        "oldestUpdate": observed_ms,
        "conflictedFields": [],
        "staleFields": [],
        "migratedFrom": SchemaVersion.V1.value,
        "migratedAt": to_epoch_ms(moment),
        "inferredSource": source.value,
        "backfilled": backfilled,
    }
    return migrated


def migrate_v1_to_v2_batch(
    records: Iterable[Mapping[str, Any]], *, now: datetime | None = None
) -> list[dict[str, Any]]:
    """Migrate every record or none: the first failure aborts the batch."""

    moment = now or utcnow()
    migrated: list[dict[str, Any]] = []
    for index, record in enumerate(records):
        try:
            migrated.append(migrate_v1_to_v2(record, now=moment))
        except MigrationError as exc:
            raise MigrationError(
                f"Batch aborted at record {index}: {exc}",
                entity_id=exc.entity_id,
                from_version=SchemaVersion.V1,
                to_version=SchemaVersion.V2,
            ) from exc
    return migrated


def migration_summary_v1_to_v2(
    before: Mapping[str, Any], after: Mapping[str, Any]
) -> dict[str, Any]:
    preserved = all(
        after.get(key) == value
        for key, value in before.items()
        if key not in {"stats", "meta"}
    )
    for group in ("stats", "meta"):
        original = as_mapping(before.get(group))
        migrated = as_mapping(after.get(group))
        preserved = preserved and all(migrated.get(k) == v for k, v in original.items())
    source_metadata = after.get("sourceMetadata") or {}
    return {
        "entityId": record_id(before),
        "fromVersion": SchemaVersion.V1.value,
        "toVersion": SchemaVersion.V2.value,
        "inferredSource": source_metadata.get("primarySource", DataSource.UNKNOWN.value),
        "fieldsAdded": list(V2_ADDED_FIELDS),
        "originalFieldsPreserved": preserved,
    }


def rollback_v2_to_v1(record: Mapping[str, Any]) -> dict[str, Any]:
    """Strip source attribution from a v2 record.

    Lossy: the inferred source and fetch time are discarded and cannot be recovered.
    """

    rolled_back: dict[str, Any] = copy.deepcopy(dict(record))
    rolled_back.pop("sourceMetadata", None)
    lineage_metadata = as_mapping(rolled_back.pop("_lineageMetadata", None))
    backfilled = lineage_metadata.get("backfilled") or ()
    if isinstance(rolled_back.get("stats"), Mapping):
        stats = dict(rolled_back["stats"])
        stats.pop("source", None)
        stats.pop("updatedAt", None)
        rolled_back["stats"] = stats
    if isinstance(rolled_back.get("meta"), Mapping):
        meta = dict(rolled_back["meta"])
        meta.pop("source", None)
        if "meta.lastUpdated" in backfilled:
            meta.pop("lastUpdated", None)
        rolled_back["meta"] = meta
    return rolled_back

