from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

import pytest

from ordnance import app as app_module
from ordnance.adapters.http import ProviderFetchError
from ordnance.app import migrate_weapons, migration_stats, reconcile_weapon
from ordnance.config import MissingConfigurationError
from ordnance.domain.errors import MigrationError, NoSourcesError
from ordnance.domain.model import DataSource, SchemaVersion
from ordnance.domain.model.documents import to_epoch_ms
from ordnance.domain.reconciliation import entity_id
from ordnance.domain.schema import detect_version, migrate_to
from ordnance.domain.schema.migrations import migrate_v1_to_v2
from tests.helpers.weapons import (
    FakeFetcher,
    FakeWeaponRepository,
    FakeWeaponUnitOfWork,
    v1_weapon,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime

    from ordnance.adapters.sqlalchemy import SqlAlchemyWeaponUnitOfWork
    from ordnance.domain.clock import Clock
    from ordnance.domain.lineage import ConfidenceModel

MCW_ID = entity_id("MCW", "MW3")


def _fetchers() -> list[FakeFetcher]:
    return [
        FakeFetcher(
            DataSource.CODARMORY,
            {
                "name": "MCW",
                "game": "MW3",
                "category": "Assault Rifle",
                "stats": {"damage": 70, "range": 65},
                "rpm": 750,
            },
        ),
        FakeFetcher(
            DataSource.WIKI,
            {"name": "MCW", "game": "Modern Warfare III", "stats": {"damage": 90}},
        ),
        FakeFetcher(DataSource.WZSTATS, error=ProviderFetchError("wzstats: unexpected status 503")),
        FakeFetcher(DataSource.CODMUNITY),
    ]


def test_reconcile_weapon_stores_merged_document(clock: Clock) -> None:
    uow = FakeWeaponUnitOfWork()

    result = reconcile_weapon(
        "MCW", "MW3", fetchers=_fetchers(), unit_of_work_factory=lambda: uow, clock=clock
    )

    weapon = result.merge.weapon
    assert weapon.id == MCW_ID
    assert weapon.lineage.contributing_sources == (DataSource.CODARMORY, DataSource.WIKI)
    assert weapon.stats["damage"].has_conflict
    assert [failure.source for failure in result.failures] == [DataSource.WZSTATS]
    assert result.missing == (DataSource.CODMUNITY,)
    assert uow.commits == 1

    stored = uow.weapons.get(MCW_ID)
    assert stored is not None
    assert detect_version(stored) is SchemaVersion.V3
    assert stored["ballistics"]["fireRate"]["currentValue"] == 750


def test_reconcile_without_game_derives_id_from_merged_identity(clock: Clock) -> None:
    uow = FakeWeaponUnitOfWork()

    result = reconcile_weapon(
        "MCW", fetchers=_fetchers()[:2], unit_of_work_factory=lambda: uow, clock=clock
    )

    assert result.merge.weapon.id == MCW_ID
    assert uow.weapons.count() == 1


def test_reconcile_id_does_not_depend_on_provider_order(clock: Clock) -> None:
    uow = FakeWeaponUnitOfWork()
    meta = FakeFetcher(DataSource.WZSTATS, {"name": "MCW", "tier": "A"})
    armory = _fetchers()[0]

    first = reconcile_weapon(
        "MCW", fetchers=[meta, armory], unit_of_work_factory=lambda: uow, clock=clock
    )
    second = reconcile_weapon(
        "MCW", fetchers=[armory, meta], unit_of_work_factory=lambda: uow, clock=clock
    )

    assert first.merge.weapon.id == second.merge.weapon.id == MCW_ID
    assert second.merge.history == ()
    assert uow.weapons.count() == 1
    stored = uow.weapons.get(MCW_ID)
    assert stored is not None
    assert stored["game"] == "MW3"


def test_requested_game_fills_in_for_sources_without_one(clock: Clock) -> None:
    uow = FakeWeaponUnitOfWork()
    ballistics = FakeFetcher(DataSource.CODMUNITY, {"name": "MCW", "fireRate": 750})

    result = reconcile_weapon(
        "MCW", "mw3", fetchers=[ballistics], unit_of_work_factory=lambda: uow, clock=clock
    )

    assert result.merge.weapon.id == MCW_ID
    assert result.merge.weapon.game == "MW3"
    assert uow.weapons.get(MCW_ID) is not None


def test_reconcile_keeps_creation_time_of_stored_legacy_record(
    clock: Clock, now: datetime
) -> None:
    created = now - timedelta(days=10)
    legacy = v1_weapon(id=MCW_ID, createdAt=to_epoch_ms(created))
    uow = FakeWeaponUnitOfWork(FakeWeaponRepository([legacy]))

    result = reconcile_weapon(
        "MCW", "MW3", fetchers=_fetchers(), unit_of_work_factory=lambda: uow, clock=clock
    )

    assert result.merge.weapon.created_at == created
    stored = uow.weapons.get(MCW_ID)
    assert stored is not None
    assert stored["createdAt"] == to_epoch_ms(created)
    assert stored["updatedAt"] == to_epoch_ms(now)


def test_reconcile_fails_when_too_few_providers_answer(clock: Clock) -> None:
    uow = FakeWeaponUnitOfWork()

    with pytest.raises(NoSourcesError):
        reconcile_weapon(
            "MCW",
            "MW3",
            fetchers=_fetchers(),
            unit_of_work_factory=lambda: uow,
            min_successful_sources=3,
            clock=clock,
        )

    assert uow.weapons.count() == 0
    assert uow.commits == 0


def test_reconcile_requires_configured_providers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_module, "get_provider_configs", lambda: ())

    with pytest.raises(MissingConfigurationError, match="No provider endpoints configured"):
        reconcile_weapon("MCW", unit_of_work_factory=FakeWeaponUnitOfWork)


def _mixed_store(confidence_model: ConfidenceModel, now: datetime) -> FakeWeaponRepository:
    return FakeWeaponRepository(
        [
            v1_weapon(id="a-v1"),
            migrate_v1_to_v2(v1_weapon(id="b-v2"), now=now),
            migrate_to(v1_weapon(id="c-v3"), confidence=confidence_model).document,
        ]
    )


def test_migrate_weapons_moves_everything_to_latest(
    clock: Clock, now: datetime, confidence_model: ConfidenceModel
) -> None:
    uow = FakeWeaponUnitOfWork(_mixed_store(confidence_model, now))

    result = migrate_weapons(unit_of_work_factory=lambda: uow, clock=clock)

    assert result.target is SchemaVersion.V3
    assert (result.scanned, result.migrated, result.failed) == (3, 2, 0)
    assert result.audit_records == 3
    assert uow.commits == 1
    assert {
        detect_version(document) for document in uow.weapons.documents.values()
    } == {SchemaVersion.V3}
    assert [(record.entity_id, record.to_version) for record in uow.migrations.records] == [
        ("a-v1", SchemaVersion.V2),
        ("a-v1", SchemaVersion.V3),
        ("b-v2", SchemaVersion.V3),
    ]


def test_migrate_weapons_to_intermediate_target(
    clock: Clock, now: datetime, confidence_model: ConfidenceModel
) -> None:
    uow = FakeWeaponUnitOfWork(_mixed_store(confidence_model, now))

    result = migrate_weapons("v2", unit_of_work_factory=lambda: uow, clock=clock)

    assert (result.scanned, result.migrated, result.failed) == (3, 1, 0)
    assert detect_version(uow.weapons.documents["a-v1"]) is SchemaVersion.V2
    assert detect_version(uow.weapons.documents["c-v3"]) is SchemaVersion.V3


def test_migrate_weapons_audits_failures_and_keeps_the_document(
    monkeypatch: pytest.MonkeyPatch,
    clock: Clock,
    now: datetime,
    confidence_model: ConfidenceModel,
) -> None:
    real_migrate_to = app_module.migrate_to

    def flaky_migrate_to(document: Mapping[str, Any], *args: Any, **kwargs: Any) -> Any:
        if document.get("id") == "b-v2":
            raise MigrationError(
                "Migration v2 -> v3 failed for b-v2: corrupt",
                entity_id="b-v2",
                from_version=SchemaVersion.V2,
                to_version=SchemaVersion.V3,
            )
        return real_migrate_to(document, *args, **kwargs)

    monkeypatch.setattr(app_module, "migrate_to", flaky_migrate_to)
    store = _mixed_store(confidence_model, now)
    before = store.get("b-v2")
    uow = FakeWeaponUnitOfWork(store)

    result = migrate_weapons(unit_of_work_factory=lambda: uow, clock=clock)

    assert (result.migrated, result.failed, result.audit_records) == (1, 1, 3)
    assert uow.weapons.get("b-v2") == before
    failure = next(record for record in uow.migrations.records if not record.success)
    assert failure.entity_id == "b-v2"
    assert failure.entity_name == "MCW"
    assert failure.from_version is SchemaVersion.V2
    assert failure.timestamp == now
    assert failure.error == "Migration v2 -> v3 failed for b-v2: corrupt"


def test_migrate_weapons_uses_configured_audit_batch_size(
    monkeypatch: pytest.MonkeyPatch, clock: Clock
) -> None:
    monkeypatch.setenv("ORDNANCE_AUDIT_BATCH_SIZE", "1")
    store = FakeWeaponRepository([v1_weapon(id="a"), v1_weapon(id="b")])
    uow = FakeWeaponUnitOfWork(store)

    migrate_weapons(unit_of_work_factory=lambda: uow, clock=clock)

    assert store.batch_sizes == [1]
    assert uow.migrations.batches == [1, 1, 1, 1]


def test_migration_stats_counts_pending_documents(
    clock: Clock, now: datetime, confidence_model: ConfidenceModel
) -> None:
    uow = FakeWeaponUnitOfWork(_mixed_store(confidence_model, now))

    before = migration_stats(unit_of_work_factory=lambda: uow)
    migrate_weapons(unit_of_work_factory=lambda: uow, clock=clock)
    after = migration_stats(unit_of_work_factory=lambda: uow)

    assert (before.total, before.pending) == (0, 2)
    assert (after.total, after.migrated, after.failed, after.pending) == (3, 2, 0, 0)
    assert after.by_version == {SchemaVersion.V2: 1, SchemaVersion.V3: 2}
    assert after.last_migration == now


def test_reconcile_and_migrate_against_sqlite(
    sqlite_unit_of_work: Callable[[], SqlAlchemyWeaponUnitOfWork],
    clock: Clock,
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.weapons.upsert(v1_weapon(id="legacy", name="Holger 556"))
        uow.commit()

    reconcile_weapon(
        "MCW",
        "MW3",
        fetchers=_fetchers(),
        unit_of_work_factory=sqlite_unit_of_work,
        clock=clock,
    )
    result = migrate_weapons(clock=clock)
    stats = migration_stats()

    assert (result.scanned, result.migrated) == (2, 1)
    assert (stats.total, stats.pending) == (2, 0)
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.weapons.get(MCW_ID)
        assert stored is not None
        assert stored["stats"]["damage"]["hasConflict"] is True
        assert detect_version(uow.repositories.weapons.get("legacy") or {}) is SchemaVersion.V3
