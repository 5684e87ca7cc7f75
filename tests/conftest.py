from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from ordnance.adapters.providers import normalize_payload
from ordnance.adapters.sqlalchemy import create_all_tables
from ordnance.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyWeaponUnitOfWork,
    shutdown,
    startup,
)
from ordnance.domain.lineage import ConfidenceModel, LineageBuilder
from ordnance.domain.model import DataSource, SourceRecord
from ordnance.domain.reconciliation import SchemaMerger
from ordnance.domain.resolution import ConflictResolver

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from ordnance.domain.clock import Clock
    from ordnance.domain.model import FieldValue

NOW = datetime(2025, 1, 1, tzinfo=UTC)

type RecordFactory = Callable[..., SourceRecord]


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> Clock:
    return lambda: NOW


@pytest.fixture
def make_record() -> RecordFactory:
    def factory(
        source: DataSource,
        value: FieldValue,
        *,
        age_days: float = 0.0,
        reference: str | None = None,
    ) -> SourceRecord:
        return SourceRecord(
            source=source,
            value=value,
            timestamp=NOW - timedelta(days=age_days),
            reference=reference,
        )

    return factory


@pytest.fixture
def confidence_model(clock: Clock) -> ConfidenceModel:
    return ConfidenceModel(clock=clock)


@pytest.fixture
def lineage_builder(confidence_model: ConfidenceModel) -> LineageBuilder:
    return LineageBuilder(confidence=confidence_model)


@pytest.fixture
def resolver(clock: Clock) -> ConflictResolver:
    return ConflictResolver(clock=clock)


@pytest.fixture
def merger(lineage_builder: LineageBuilder, resolver: ConflictResolver) -> SchemaMerger:
    return SchemaMerger(normalize=normalize_payload, lineage=lineage_builder, resolver=resolver)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:")
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyWeaponUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyWeaponUnitOfWork:
        return SqlAlchemyWeaponUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
