from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from ordnance.domain.errors import SchemaVersionError
from ordnance.domain.model import LATEST_SCHEMA_VERSION, MigrationRecord, SchemaVersion
from ordnance.domain.schema import (
    SchemaVersionManager,
    detect_version,
    get_migration_path,
    migrate_to,
    needs_migration,
    parse_version,
    validate_schema,
)
from ordnance.domain.schema.migrations import migrate_v1_to_v2
from ordnance.domain.settings import MigrationConfig
from tests.helpers.weapons import FakeMigrationLog, v1_weapon

if TYPE_CHECKING:
    from datetime import datetime

    from ordnance.domain.lineage import ConfidenceModel


def _audit(
    entity: str, now: datetime, *, success: bool = True, **kwargs: object
) -> MigrationRecord:
    return MigrationRecord(
        entity_id=entity,
        from_version=SchemaVersion.V1,
        to_version=SchemaVersion.V2,
        timestamp=now,
        success=success,
        **kwargs,  # type: ignore[arg-type]
    )


def test_versions_are_ordered_by_generation() -> None:
    assert SchemaVersion.V1 < SchemaVersion.V2 < SchemaVersion.V3
    assert LATEST_SCHEMA_VERSION is SchemaVersion.V3
    assert parse_version(" V2 ") is SchemaVersion.V2


def test_unknown_version_label_is_rejected() -> None:
    with pytest.raises(SchemaVersionError, match="Unknown schema version"):
        parse_version("v4")


def test_detects_each_generation(now: datetime, confidence_model: ConfidenceModel) -> None:
    v1 = v1_weapon()
    v2 = migrate_v1_to_v2(v1, now=now)
    v3 = migrate_to(v1, SchemaVersion.V3, confidence=confidence_model).document

    assert detect_version(v1) is SchemaVersion.V1
    assert detect_version(v2) is SchemaVersion.V2
    assert detect_version(v3) is SchemaVersion.V3


def test_ambiguous_record_defaults_to_v1_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="ordnance.domain.schema.versions"):
        version = detect_version({"name": "Mystery", "game": "MW3"})

    assert version is SchemaVersion.V1
    assert "Could not detect schema version for Mystery" in caplog.text


def test_non_mapping_cannot_be_detected() -> None:
    with pytest.raises(SchemaVersionError):
        detect_version(["not", "a", "record"])  # type: ignore[arg-type]


def test_migration_path_is_forward_and_inclusive() -> None:
    assert get_migration_path("v1", "v3") == (
        SchemaVersion.V1,
        SchemaVersion.V2,
        SchemaVersion.V3,
    )
    assert get_migration_path(SchemaVersion.V2, SchemaVersion.V2) == (SchemaVersion.V2,)


def test_backward_migration_path_is_rejected() -> None:
    with pytest.raises(SchemaVersionError, match="Cannot migrate backwards"):
        get_migration_path(SchemaVersion.V3, SchemaVersion.V1)


def test_needs_migration_compares_against_target(now: datetime) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)

    assert needs_migration(v1_weapon())
    assert needs_migration(v2)
    assert not needs_migration(v2, SchemaVersion.V2)
    assert not needs_migration(v1_weapon(), "v1")


def test_validate_schema_accepts_matching_generation() -> None:
    result = validate_schema(v1_weapon(), SchemaVersion.V1)

    assert result.valid
    assert result.errors == ()


def test_validate_schema_reports_generation_mismatch() -> None:
    result = validate_schema(v1_weapon(), "v2")

    assert not result.valid
    assert "Expected schema v2 but detected v1" in result.errors
    assert "v2 record has no source tracking" in result.warnings


def test_validate_schema_includes_generic_checks() -> None:
    result = validate_schema(v1_weapon(stats={"damage": 180}), SchemaVersion.V1)

    assert "stats.damage must be within 0-100, got 180" in result.errors


def test_validate_v3_requires_wrapped_fields(
    confidence_model: ConfidenceModel,
) -> None:
    document = migrate_to(v1_weapon(), confidence=confidence_model).document
    document["stats"]["damage"] = {"currentValue": 80}

    result = validate_schema(document, SchemaVersion.V3)

    assert (
        "stats.damage is missing primarySource, confidence, sources" in result.errors
    )


def test_record_migrations_flushes_in_bounded_batches(now: datetime) -> None:
    log = FakeMigrationLog()
    manager = SchemaVersionManager(migration_log=log)

    written = manager.record_migrations(_audit(f"w{index}", now) for index in range(1200))

    assert written == 1200
    assert log.batches == [500, 500, 200]


def test_record_migrations_respects_configured_batch_size(now: datetime) -> None:
    log = FakeMigrationLog()
    manager = SchemaVersionManager(
        migration_log=log, config=MigrationConfig(audit_batch_size=2)
    )

    assert manager.record_migrations(_audit(f"w{index}", now) for index in range(5)) == 5
    assert log.batches == [2, 2, 1]
    assert manager.record_migrations([]) == 0


def test_history_and_recent_delegate_to_the_log(now: datetime) -> None:
    log = FakeMigrationLog()
    manager = SchemaVersionManager(migration_log=log)
    manager.record_migration(_audit("a", now - timedelta(hours=2)))
    manager.record_migration(_audit("b", now - timedelta(hours=1)))
    manager.record_migration(_audit("a", now))

    assert [record.timestamp for record in manager.get_migration_history("a")] == [
        now - timedelta(hours=2),
        now,
    ]
    assert [record.entity_id for record in manager.get_recent_migrations(2)] == ["a", "b"]
    assert manager.get_latest_version() is SchemaVersion.V3


def test_migration_stats_summarise_the_log(now: datetime) -> None:
    log = FakeMigrationLog()
    manager = SchemaVersionManager(migration_log=log)
    manager.record_migrations(
        [
            _audit("a", now - timedelta(days=1), duration_ms=2.0),
            MigrationRecord(
                entity_id="a",
                from_version=SchemaVersion.V2,
                to_version=SchemaVersion.V3,
                timestamp=now,
                success=True,
                duration_ms=4.0,
            ),
            _audit("b", now - timedelta(days=2), success=False, error="boom"),
        ]
    )

    stats = manager.get_migration_stats(pending=3)

    assert stats.total == 3
    assert stats.by_version == {SchemaVersion.V2: 1, SchemaVersion.V3: 1}
    assert stats.migrated == 1
    assert stats.failed == 1
    assert stats.pending == 3
    assert stats.last_migration == now
    assert stats.average_duration_ms == pytest.approx(3.0)


def test_migration_stats_of_an_empty_log() -> None:
    stats = SchemaVersionManager(migration_log=FakeMigrationLog()).get_migration_stats()

    assert stats.total == 0
    assert stats.by_version == {}
    assert stats.last_migration is None
    assert stats.average_duration_ms is None
