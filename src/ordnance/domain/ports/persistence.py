"""Persistence-related domain ports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence

    from ordnance.domain.model import MigrationRecord


class WeaponRepository(Protocol):
    """Weapon documents keyed by canonical id, in whatever schema version they were stored."""

    def get(self, entity_id: str) -> Mapping[str, Any] | None: ...

    def upsert(self, document: Mapping[str, Any]) -> None: ...

    def iter_documents(self, *, batch_size: int = ...) -> Iterator[Mapping[str, Any]]: ...

    def count(self) -> int: ...


class MigrationLog(Protocol):
    """Append-only store of migration audit records."""

    def append_batch(self, records: Sequence[MigrationRecord]) -> None: ...

    def history(self, entity_id: str) -> list[MigrationRecord]: ...

    def recent(self, limit: int) -> list[MigrationRecord]: ...

    def iter_all(self) -> Iterable[MigrationRecord]: ...
