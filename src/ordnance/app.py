"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from ordnance.adapters.http import build_http_fetchers
from ordnance.adapters.providers import normalize_payload
from ordnance.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyWeaponUnitOfWork,
    is_started,
    startup,
)
from ordnance.config import (
    MissingConfigurationError,
    get_confidence_config,
    get_merge_config,
    get_migration_config,
    get_provider_configs,
    get_resolver_config,
)
from ordnance.domain.clock import utcnow
from ordnance.domain.collection import collect_sourced_records
from ordnance.domain.errors import MigrationError
from ordnance.domain.lineage import ConfidenceModel, LineageBuilder
from ordnance.domain.model import LATEST_SCHEMA_VERSION, MigrationRecord, SchemaVersion
from ordnance.domain.model.documents import weapon_from_document, weapon_to_document
from ordnance.domain.ports.unit_of_work import WeaponUnitOfWork
from ordnance.domain.reconciliation import SchemaMerger
from ordnance.domain.resolution import ConflictResolver
from ordnance.domain.schema import (
    SchemaVersionManager,
    detect_version,
    migrate_to,
    needs_migration,
    parse_version,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ordnance.domain.clock import Clock
    from ordnance.domain.collection import SourceFailure
    from ordnance.domain.model import DataSource, MigrationStats, UnifiedWeapon
    from ordnance.domain.ports import PayloadFetcher
    from ordnance.domain.reconciliation import MergeResult

UnitOfWorkFactory = Callable[[], WeaponUnitOfWork]


log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconcileResult:
    merge: MergeResult
    failures: tuple[SourceFailure, ...] = ()
    missing: tuple[DataSource, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class MigrateResult:
    target: SchemaVersion
    scanned: int
    migrated: int
    failed: int
    audit_records: int


def build_confidence_model(*, clock: Clock = utcnow) -> ConfidenceModel:
    return ConfidenceModel(config=get_confidence_config(), clock=clock)


def build_schema_merger(*, clock: Clock = utcnow) -> SchemaMerger:
    """Wire a merger from environment configuration; every stage shares ``clock``."""

    return SchemaMerger(
        normalize=normalize_payload,
        config=get_merge_config(),
        lineage=LineageBuilder(confidence=build_confidence_model(clock=clock)),
        resolver=ConflictResolver(config=get_resolver_config(), clock=clock),
    )


def _default_fetchers() -> tuple[PayloadFetcher, ...]:
    configs = get_provider_configs()
    if not configs:
        raise MissingConfigurationError(
            "No provider endpoints configured; set ORDNANCE_<SOURCE>_URL variables"
        )
    return build_http_fetchers(configs)


def _resolve_unit_of_work(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyWeaponUnitOfWork


def _load_existing(
    document: Mapping[str, Any] | None, confidence: ConfidenceModel
) -> UnifiedWeapon | None:
    if document is None:
        return None
    if detect_version(document) is not SchemaVersion.V3:
        document = migrate_to(document, SchemaVersion.V3, confidence=confidence).document
    return weapon_from_document(document)


def reconcile_weapon(
    name: str,
    game: str | None = None,
    *,
    fetchers: Sequence[PayloadFetcher] | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    min_successful_sources: int = 1,
    clock: Clock = utcnow,
) -> ReconcileResult:
    """Fetch ``name`` from every provider, merge with the stored entity, and persist it."""

    effective_fetchers = tuple(fetchers) if fetchers is not None else _default_fetchers()
    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    merger = build_schema_merger(clock=clock)
    log.info(
        "Reconciling %s (game=%s) across %d providers", name, game, len(effective_fetchers)
    )

    collected = asyncio.run(
        collect_sourced_records(
            effective_fetchers,
            name=name,
            game=game,
            min_successful_sources=min_successful_sources,
            clock=clock,
        )
    )
    weapon_id = merger.identify(collected.records, game_hint=game)

    with effective_uow() as uow:
        weapons = uow.repositories.weapons
        existing = _load_existing(weapons.get(weapon_id), merger.lineage.confidence)
        result = merger.merge_entities(weapon_id, collected.records, existing, game_hint=game)
        weapons.upsert(weapon_to_document(result.weapon))
        uow.commit()

    for warning in result.warnings:
        log.warning("%s: %s", result.weapon.name, warning)
    for error in result.errors:
        log.error("%s failed validation: %s", result.weapon.name, error)
    for change in result.history:
        log.debug(
            "%s: %s %r -> %r (%s)",
            change.weapon_id,
            change.field,
            change.old_value,
            change.new_value,
            change.reason,
        )
    log.info(
        "Stored %s: sources=%d, fields=%d, conflicts=%d, confidence=%.3f, changes=%d",
        result.weapon.id,
        result.stats.sources_processed,
        result.stats.fields_resolved,
        result.stats.conflicts_detected,
        result.stats.average_confidence,
        len(result.history),
    )
    return ReconcileResult(
        merge=result,
        failures=collected.failures,
        missing=collected.missing,
    )


def _failure_record(
    exc: MigrationError, document: Mapping[str, Any], now: Clock
) -> MigrationRecord:
    return MigrationRecord(
        entity_id=exc.entity_id or str(document.get("id") or document.get("name")),
        entity_name=document.get("name"),
        from_version=exc.from_version or detect_version(document),
        to_version=exc.to_version or LATEST_SCHEMA_VERSION,
        timestamp=now(),
        success=False,
        error=str(exc),
    )


def migrate_weapons(
    target: SchemaVersion | str = LATEST_SCHEMA_VERSION,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    clock: Clock = utcnow,
) -> MigrateResult:
    """Move every stored weapon forward to ``target`` and append the audit trail.

    A failing entity is logged and audited; its stored document is left untouched.
    """

    target_version = parse_version(target)
    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    confidence = build_confidence_model(clock=clock)
    config = get_migration_config()

    scanned = migrated = failed = 0
    audit: list[MigrationRecord] = []
    with effective_uow() as uow:
        weapons = uow.repositories.weapons
        for document in weapons.iter_documents(batch_size=config.audit_batch_size):
            scanned += 1
            if not needs_migration(document, target_version):
                continue
            try:
                outcome = migrate_to(document, target_version, confidence=confidence)
            except MigrationError as exc:
                log.exception("Migration failed for %s", exc.entity_id)
                audit.append(_failure_record(exc, document, clock))
                failed += 1
                continue
            weapons.upsert(outcome.document)
            audit.extend(outcome.steps)
            migrated += 1

        manager = SchemaVersionManager(migration_log=uow.repositories.migrations, config=config)
        written = manager.record_migrations(audit)
        uow.commit()

    log.info(
        "Migration to %s finished: scanned=%d, migrated=%d, failed=%d",
        target_version,
        scanned,
        migrated,
        failed,
    )
    return MigrateResult(
        target=target_version,
        scanned=scanned,
        migrated=migrated,
        failed=failed,
        audit_records=written,
    )


def migration_stats(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MigrationStats:
    """Summarise the migration audit log, counting stored documents still behind."""

    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    config = get_migration_config()
    with effective_uow() as uow:
        pending = sum(
            1
            for document in uow.repositories.weapons.iter_documents(
                batch_size=config.audit_batch_size
            )
            if needs_migration(document)
        )
        manager = SchemaVersionManager(migration_log=uow.repositories.migrations, config=config)
        return manager.get_migration_stats(pending=pending)
