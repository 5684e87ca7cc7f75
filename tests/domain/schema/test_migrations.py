from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from ordnance.domain.errors import MigrationError, SchemaVersionError
from ordnance.domain.lineage import ConfidenceModel
from ordnance.domain.model import DataSource, SchemaVersion
from ordnance.domain.model.documents import to_epoch_ms, weapon_from_document
from ordnance.domain.schema import detect_version, migrate_to
from ordnance.domain.schema.migrations import (
    create_migration_report,
    infer_source,
    migrate_v1_to_v2,
    migrate_v1_to_v2_batch,
    migrate_v2_to_v3,
    migrate_v2_to_v3_batch,
    migration_summary_v1_to_v2,
    record_source,
    rollback_v2_to_v1,
    validate_v3_migration,
)
from tests.helpers.weapons import v1_weapon

if TYPE_CHECKING:
    from datetime import datetime


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"imageUrl": "https://cdn.CODArmory.com/mcw.png"}, DataSource.CODARMORY),
        ({"meta": {"tier": "A", "popularity": 12.5}}, DataSource.WZSTATS),
        (
            {"ballistics": {"damageRanges": [{"range": 0, "damage": 30}], "ttk": {"min": 300}}},
            DataSource.CODARMORY,
        ),
        ({"attachmentSlots": {"optic": ["Slate Reflector"]}}, DataSource.CODARMORY),
        ({"bestFor": ["Long Range"]}, DataSource.MANUAL),
        ({"meta": {"tier": "A", "popularity": ""}}, DataSource.UNKNOWN),
        ({}, DataSource.UNKNOWN),
    ],
)
def test_infer_source_from_field_clusters(
    overrides: dict[str, object], expected: DataSource
) -> None:
    assert infer_source(v1_weapon(**overrides)) is expected


def test_v1_to_v2_adds_source_attribution(now: datetime) -> None:
    record = v1_weapon(imageUrl="https://codarmory.com/mcw.png")

    migrated = migrate_v1_to_v2(record, now=now)

    assert migrated["stats"]["source"] == "codarmory"
    assert migrated["stats"]["updatedAt"] == to_epoch_ms(now)
    assert migrated["stats"]["damage"] == 80
    assert migrated["meta"] == {
        "tier": "A",
        "source": "codarmory",
        "lastUpdated": now.isoformat(),
    }
    assert migrated["sourceMetadata"] == {
        "primarySource": "codarmory",
        "lastFetchedAt": to_epoch_ms(now),
        "reliability": 0.5,
    }
    assert migrated["_lineageMetadata"]["migratedFrom"] == "v1"
    assert detect_version(migrated) is SchemaVersion.V2


def test_v1_to_v2_does_not_mutate_input(now: datetime) -> None:
    record = v1_weapon()

    migrate_v1_to_v2(record, now=now)

    assert record == v1_weapon()


def test_v1_to_v2_uses_recorded_update_time(now: datetime) -> None:
    observed = now - timedelta(days=3)
    record = v1_weapon(meta={"tier": "A", "lastUpdated": observed.isoformat()})

    migrated = migrate_v1_to_v2(record, now=now)

    assert migrated["sourceMetadata"]["lastFetchedAt"] == to_epoch_ms(observed)
    assert migrated["_lineageMetadata"]["migratedAt"] == to_epoch_ms(now)


def test_v1_to_v2_seeds_legacy_lineage_metadata(now: datetime) -> None:
    observed = now - timedelta(days=3)
    record = v1_weapon(
        imageUrl="https://codarmory.com/mcw.png",
        meta={"tier": "A", "lastUpdated": observed.isoformat()},
    )

    migrated = migrate_v1_to_v2(record, now=now)

    assert migrated["meta"]["lastUpdated"] == observed.isoformat()
    metadata = migrated["_lineageMetadata"]
    assert metadata["averageConfidence"] == 0.5
    assert metadata["totalSources"] == 1
    assert metadata["sourcesByName"] == {"codarmory": 1}
    assert metadata["lastUpdate"] == to_epoch_ms(observed)
    assert metadata["conflictedFields"] == []
    assert metadata["staleFields"] == []
    assert metadata["backfilled"] == []
    assert rollback_v2_to_v1(migrated) == record


def test_v1_to_v2_rejects_other_generations(now: datetime) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)

    with pytest.raises(MigrationError, match="not a v1 record") as excinfo:
        migrate_v1_to_v2(v2, now=now)

    assert excinfo.value.entity_id == "mcw-mw3"
    assert excinfo.value.to_version is SchemaVersion.V2


def test_v1_to_v2_batch_is_all_or_nothing(now: datetime) -> None:
    good = v1_weapon()
    already_migrated = migrate_v1_to_v2(v1_weapon(id="holger-mw3", name="Holger 556"), now=now)

    assert len(migrate_v1_to_v2_batch([good, v1_weapon(id="other")], now=now)) == 2
    with pytest.raises(MigrationError, match="Batch aborted at record 1") as excinfo:
        migrate_v1_to_v2_batch([good, already_migrated], now=now)
    assert excinfo.value.entity_id == "holger-mw3"


def test_v1_to_v2_summary_and_rollback(now: datetime) -> None:
    before = v1_weapon()
    after = migrate_v1_to_v2(before, now=now)

    summary = migration_summary_v1_to_v2(before, after)

    assert summary["entityId"] == "mcw-mw3"
    assert summary["inferredSource"] == "unknown"
    assert summary["originalFieldsPreserved"] is True
    assert "sourceMetadata" in summary["fieldsAdded"]
    assert rollback_v2_to_v1(after) == before


def test_v2_to_v3_wraps_every_field(now: datetime, confidence_model: ConfidenceModel) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)

    document = migrate_v2_to_v3(v2, confidence=confidence_model)

    assert detect_version(document) is SchemaVersion.V3
    damage = document["stats"]["damage"]
    assert damage["currentValue"] == 80
    assert damage["primarySource"] == "unknown"
    assert damage["hasConflict"] is False
    assert len(damage["sources"]) == 1
    # unknown reliability (0.3) * fresh (1.0) * v2 default quality (0.5)
    assert damage["confidence"]["value"] == pytest.approx(0.15)
    assert document["meta"]["tier"]["currentValue"] == "A"
    assert document["lineage"]["totalSources"] == 1
    assert document["lineage"]["averageConfidence"] == pytest.approx(0.15)
    assert document["lineage"]["contributingSources"] == ["unknown"]
    assert document["id"] == "mcw-mw3"


def test_v2_to_v3_missing_fields_become_defaults(
    now: datetime, confidence_model: ConfidenceModel
) -> None:
    document = migrate_v2_to_v3(
        migrate_v1_to_v2(v1_weapon(), now=now), confidence=confidence_model
    )
    accuracy = document["stats"]["accuracy"]

    assert accuracy["currentValue"] is None
    assert accuracy["sources"] == []
    assert accuracy["primarySource"] == "unknown"
    assert accuracy["confidence"]["value"] == 0.0
    assert weapon_from_document(document).stats["accuracy"].is_default


def test_v2_to_v3_keeps_unrecognised_keys(now: datetime, confidence_model: ConfidenceModel) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(notes="curated by hand"), now=now)

    document = migrate_v2_to_v3(v2, confidence=confidence_model)

    assert document["notes"] == "curated by hand"
    assert "sourceMetadata" not in document
    assert "_lineageMetadata" not in document


def test_v2_to_v3_flags_stale_records(now: datetime) -> None:
    model = ConfidenceModel(clock=lambda: now)
    v2 = migrate_v1_to_v2(v1_weapon(), now=now - timedelta(days=45))

    document = migrate_v2_to_v3(v2, confidence=model)
    report = create_migration_report(v2, document)

    assert document["lineage"]["staleDataCount"] == 1
    assert report["valid"] is True
    assert report["warnings"] == ["Migrated record is built from stale data"]


def test_v2_to_v3_rejects_other_generations(confidence_model: ConfidenceModel) -> None:
    with pytest.raises(MigrationError, match="not a v2 record"):
        migrate_v2_to_v3(v1_weapon(), confidence=confidence_model)


def test_v2_to_v3_batch_is_all_or_nothing(
    now: datetime, confidence_model: ConfidenceModel
) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)

    with pytest.raises(MigrationError, match="Batch aborted at record 1"):
        migrate_v2_to_v3_batch([v2, v1_weapon()], confidence=confidence_model)


def test_record_source_prefers_source_metadata(now: datetime) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)
    v2["sourceMetadata"]["primarySource"] = "wiki"

    assert record_source(v2) is DataSource.WIKI
    assert record_source({"stats": {"source": "wzstats"}}) is DataSource.WZSTATS
    assert record_source({}) is DataSource.UNKNOWN


def test_migration_report_for_faithful_migration(
    now: datetime, confidence_model: ConfidenceModel
) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)
    document = migrate_v2_to_v3(v2, confidence=confidence_model)

    report = create_migration_report(v2, document)

    assert report["valid"] is True
    assert report["primarySource"] == "unknown"
    assert report["confidence"] == pytest.approx(0.15)
    assert set(report["fieldsWrapped"]) == {
        "stats.damage",
        "stats.range",
        "stats.mobility",
        "meta.tier",
    }


def test_validate_v3_migration_detects_changed_values(
    now: datetime, confidence_model: ConfidenceModel
) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)
    document = migrate_v2_to_v3(v2, confidence=confidence_model)
    document["stats"]["damage"]["currentValue"] = 81
    document["category"] = "SMG"

    result = validate_v3_migration(v2, document)

    assert "category changed during migration" in result.errors
    assert "stats.damage value changed during migration" in result.errors


def test_migrate_to_walks_every_step(confidence_model: ConfidenceModel, now: datetime) -> None:
    outcome = migrate_to(v1_weapon(), SchemaVersion.V3, confidence=confidence_model)

    assert outcome.migrated
    assert outcome.from_version is SchemaVersion.V1
    assert outcome.to_version is SchemaVersion.V3
    assert [(step.from_version, step.to_version) for step in outcome.steps] == [
        (SchemaVersion.V1, SchemaVersion.V2),
        (SchemaVersion.V2, SchemaVersion.V3),
    ]
    assert all(step.success and step.entity_id == "mcw-mw3" for step in outcome.steps)
    assert all(step.timestamp == now for step in outcome.steps)
    assert outcome.document["stats"]["damage"]["currentValue"] == 80


def test_migrate_to_current_generation_is_a_no_op(confidence_model: ConfidenceModel) -> None:
    outcome = migrate_to(v1_weapon(), "v1", confidence=confidence_model)

    assert not outcome.migrated
    assert outcome.document == v1_weapon()


def test_migrate_to_older_generation_is_rejected(
    now: datetime, confidence_model: ConfidenceModel
) -> None:
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)

    with pytest.raises(SchemaVersionError):
        migrate_to(v2, SchemaVersion.V1, confidence=confidence_model)


def test_migrate_to_wraps_step_failures(
    monkeypatch: pytest.MonkeyPatch, confidence_model: ConfidenceModel, now: datetime
) -> None:
    def broken(*_: object, **__: object) -> dict[str, object]:
        raise ValueError("corrupt sourceMetadata")

    monkeypatch.setattr("ordnance.domain.schema.migrations.migrate_v2_to_v3", broken)
    v2 = migrate_v1_to_v2(v1_weapon(), now=now)

    with pytest.raises(MigrationError, match="Migration v2 -> v3 failed for mcw-mw3") as excinfo:
        migrate_to(v2, confidence=confidence_model)

    assert excinfo.value.entity_id == "mcw-mw3"
    assert excinfo.value.from_version is SchemaVersion.V2
    assert excinfo.value.to_version is SchemaVersion.V3
    assert isinstance(excinfo.value.__cause__, ValueError)
