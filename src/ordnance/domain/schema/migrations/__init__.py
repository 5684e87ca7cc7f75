"""Forward migrations between schema generations."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from itertools import pairwise
from typing import TYPE_CHECKING, Any

from ordnance.domain.errors import MigrationError, SchemaVersionError
from ordnance.domain.lineage import ConfidenceModel
from ordnance.domain.model import LATEST_SCHEMA_VERSION, MigrationRecord, SchemaVersion
from ordnance.domain.schema.versions import (
    detect_version,
    get_migration_path,
    parse_version,
    record_id,
)

from .v1_to_v2 import (
    can_migrate_v1_to_v2,
    infer_source,
    migrate_v1_to_v2,
    migrate_v1_to_v2_batch,
    migration_summary_v1_to_v2,
    rollback_v2_to_v1,
)
from .v2_to_v3 import (
    can_migrate_v2_to_v3,
    create_migration_report,
    migrate_v2_to_v3,
    migrate_v2_to_v3_batch,
    record_source,
    validate_v3_migration,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class MigrationOutcome:
    document: dict[str, Any]
    from_version: SchemaVersion
    to_version: SchemaVersion
    steps: tuple[MigrationRecord, ...] = ()

    @property
    def migrated(self) -> bool:
        return bool(self.steps)


def migrate_step(
    record: Mapping[str, Any],
    from_version: SchemaVersion,
    *,
    confidence: ConfidenceModel,
) -> dict[str, Any]:
    """Apply the single migration leaving ``from_version``."""

    match from_version:
        case SchemaVersion.V1:
            return migrate_v1_to_v2(record, now=confidence.now())
        case SchemaVersion.V2:
            return migrate_v2_to_v3(record, confidence=confidence)
        case SchemaVersion.V3:
            raise SchemaVersionError(f"No migration is defined beyond {SchemaVersion.V3}")


def migrate_to(
    record: Mapping[str, Any],
    target: SchemaVersion | str = LATEST_SCHEMA_VERSION,
    *,
    confidence: ConfidenceModel | None = None,
) -> MigrationOutcome:
    """Walk ``record`` forward one generation at a time until it reaches ``target``.

    Raises ``SchemaVersionError`` when ``target`` is older than the record and
    ``MigrationError`` when a step fails; steps already applied are discarded.
    """

    model = confidence or ConfidenceModel()
    start = detect_version(record)
    path = get_migration_path(start, parse_version(target))
    document: dict[str, Any] = dict(record)
    steps: list[MigrationRecord] = []
    entity = record_id(record) or "<unknown>"
    for step_from, step_to in pairwise(path):
        started = time.perf_counter()
        try:
            document = migrate_step(document, step_from, confidence=model)
        except (ValueError, TypeError, KeyError) as exc:
            raise MigrationError(
                f"Migration {step_from} -> {step_to} failed for {entity}: {exc}",
                entity_id=entity,
                from_version=step_from,
                to_version=step_to,
            ) from exc
        steps.append(
            MigrationRecord(
                entity_id=str(document.get("id") or entity),
                entity_name=document.get("name"),
                from_version=step_from,
                to_version=step_to,
                timestamp=model.now(),
                success=True,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
        )
        log.debug("Migrated %s from %s to %s", entity, step_from, step_to)
    return MigrationOutcome(
        document=document,
        from_version=start,
        to_version=path[-1],
        steps=tuple(steps),
    )


__all__ = [
    "MigrationOutcome",
    "can_migrate_v1_to_v2",
    "can_migrate_v2_to_v3",
    "create_migration_report",
    "infer_source",
    "migrate_step",
    "migrate_to",
    "migrate_v1_to_v2",
    "migrate_v1_to_v2_batch",
    "migrate_v2_to_v3",
    "migrate_v2_to_v3_batch",
    "migration_summary_v1_to_v2",
    "record_source",
    "rollback_v2_to_v1",
    "validate_v3_migration",
]
