"""Reusable fakes and sample records for weapon reconciliation tests."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Self

from ordnance.domain.ports import WeaponRepositories

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence
    from types import TracebackType

    from ordnance.domain.model import DataSource, MigrationRecord


def v1_weapon(**overrides: Any) -> dict[str, Any]:
    """A flat v1 record as it was stored before source tracking existed."""

    record: dict[str, Any] = {
        "id": "mcw-mw3",
        "name": "MCW",
        "game": "MW3",
        "category": "AR",
        "stats": {"damage": 80, "range": 60, "mobility": 55},
        "meta": {"tier": "A"},
    }
    record.update(overrides)
    return record


class FakeWeaponRepository:
    """In-memory weapon document store keyed by id."""

    def __init__(self, documents: Iterable[Mapping[str, Any]] = ()) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.batch_sizes: list[int] = []
        for document in documents:
            self.upsert(document)

    def get(self, entity_id: str) -> Mapping[str, Any] | None:
        document = self.documents.get(entity_id)
        return copy.deepcopy(document) if document is not None else None

    def upsert(self, document: Mapping[str, Any]) -> None:
        self.documents[str(document["id"])] = copy.deepcopy(dict(document))

    def iter_documents(self, *, batch_size: int = 500) -> Iterator[Mapping[str, Any]]:
        self.batch_sizes.append(batch_size)
        for key in sorted(self.documents):
            yield copy.deepcopy(self.documents[key])

    def count(self) -> int:
        return len(self.documents)


class FakeMigrationLog:
    """Append-only audit log that remembers how it was written to."""

    def __init__(self) -> None:
        self.records: list[MigrationRecord] = []
        self.batches: list[int] = []

    def append_batch(self, records: Sequence[MigrationRecord]) -> None:
        self.batches.append(len(records))
        self.records.extend(records)

    def history(self, entity_id: str) -> list[MigrationRecord]:
        return [record for record in self.records if record.entity_id == entity_id]

    def recent(self, limit: int) -> list[MigrationRecord]:
        return sorted(self.records, key=lambda record: record.timestamp, reverse=True)[:limit]

    def iter_all(self) -> Iterable[MigrationRecord]:
        return iter(self.records)


class FakeWeaponUnitOfWork:
    """Unit of work over the in-memory fakes; counts commits and rollbacks."""

    def __init__(
        self,
        weapons: FakeWeaponRepository | None = None,
        migrations: FakeMigrationLog | None = None,
    ) -> None:
        self.weapons = weapons or FakeWeaponRepository()
        self.migrations = migrations or FakeMigrationLog()
        self._repositories = WeaponRepositories(weapons=self.weapons, migrations=self.migrations)
        self.commits = 0
        self.rollbacks = 0

    @property
    def repositories(self) -> WeaponRepositories:
        return self._repositories

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class FakeFetcher:
    """Payload fetcher returning a canned payload, ``None``, or raising."""

    def __init__(
        self,
        source: DataSource,
        payload: Mapping[str, Any] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self._source = source
        self.payload = payload
        self.error = error
        self.calls: list[tuple[str, str | None]] = []

    @property
    def source(self) -> DataSource:
        return self._source

    async def fetch(self, name: str, game: str | None = None) -> Mapping[str, Any] | None:
        self.calls.append((name, game))
        if self.error is not None:
            raise self.error
        return self.payload
