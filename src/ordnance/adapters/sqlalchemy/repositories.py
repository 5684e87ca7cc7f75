"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, select, update

from ordnance.adapters.sqlalchemy.mappings import schema_migration_table, weapon_document_table
from ordnance.domain.clock import utcnow
from ordnance.domain.model import MigrationRecord
from ordnance.domain.reconciliation import entity_id
from ordnance.domain.schema import detect_version

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

    from ordnance.domain.clock import Clock
    from ordnance.domain.model import SchemaVersion

log = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


class SqlAlchemyWeaponRepository:
    """Weapon documents stored as JSON alongside their identity and schema generation."""

    def __init__(self, session: Session, *, clock: Clock = utcnow) -> None:
        self.session = session
        self._clock = clock

    def get(self, entity_id: str) -> Mapping[str, Any] | None:
        stmt = select(weapon_document_table.c.document).where(
            weapon_document_table.c.id == entity_id
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert(self, document: Mapping[str, Any]) -> None:
        identifier = str(
            document.get("id") or entity_id(document.get("name"), document.get("game"))
        )
        values = {
            "name": document.get("name"),
            "game": document.get("game"),
            "schema_version": detect_version(document),
            "document": {**document, "id": identifier},
            "updated_at": self._clock(),
        }
        exists = self.session.execute(
            select(weapon_document_table.c.id).where(weapon_document_table.c.id == identifier)
        ).scalar_one_or_none()
        if exists is None:
            self.session.execute(insert(weapon_document_table).values(id=identifier, **values))
        else:
            self.session.execute(
                update(weapon_document_table)
                .where(weapon_document_table.c.id == identifier)
                .values(**values)
            )

    def iter_documents(
        self, *, batch_size: int = DEFAULT_BATCH_SIZE
    ) -> Iterator[Mapping[str, Any]]:
        """Yield every stored document, fetched in id-ordered pages of ``batch_size``."""

        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        last_id: str | None = None
        while True:
            stmt = (
                select(weapon_document_table.c.id, weapon_document_table.c.document)
                .order_by(weapon_document_table.c.id)
                .limit(batch_size)
            )
            if last_id is not None:
                stmt = stmt.where(weapon_document_table.c.id > last_id)
            rows = self.session.execute(stmt).all()
            for row in rows:
                yield row.document
            if len(rows) < batch_size:
                return
            last_id = rows[-1].id

    def count(self) -> int:
        stmt = select(func.count()).select_from(weapon_document_table)
        return self.session.execute(stmt).scalar_one()

    def count_by_version(self) -> dict[SchemaVersion, int]:
        stmt = select(
            weapon_document_table.c.schema_version, func.count()
        ).group_by(weapon_document_table.c.schema_version)
        return {version: total for version, total in self.session.execute(stmt).all()}


def _record_from_row(row: Row[Any]) -> MigrationRecord:
    return MigrationRecord(
        entity_id=row.entity_id,
        entity_name=row.entity_name,
        from_version=row.from_version,
        to_version=row.to_version,
        timestamp=row.timestamp,
        success=row.success,
        error=row.error,
        duration_ms=row.duration_ms,
        details=row.details or {},
    )


class SqlAlchemyMigrationLog:
    """Append-only migration audit log."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append_batch(self, records: Sequence[MigrationRecord]) -> None:
        if not records:
            return
        self.session.execute(
            insert(schema_migration_table),
            [
                {
                    "entity_id": record.entity_id,
                    "entity_name": record.entity_name,
                    "from_version": record.from_version,
                    "to_version": record.to_version,
                    "timestamp": record.timestamp,
                    "success": record.success,
                    "error": record.error,
                    "duration_ms": record.duration_ms,
                    "details": dict(record.details),
                }
                for record in records
            ],
        )
        log.debug("Appended %d migration records", len(records))

    def history(self, entity_id: str) -> list[MigrationRecord]:
        stmt = (
            select(schema_migration_table)
            .where(schema_migration_table.c.entity_id == entity_id)
            .order_by(schema_migration_table.c.timestamp, schema_migration_table.c.id)
        )
        return [_record_from_row(row) for row in self.session.execute(stmt)]

    def recent(self, limit: int) -> list[MigrationRecord]:
        stmt = (
            select(schema_migration_table)
            .order_by(schema_migration_table.c.timestamp.desc(), schema_migration_table.c.id.desc())
            .limit(limit)
        )
        return [_record_from_row(row) for row in self.session.execute(stmt)]

    def iter_all(self) -> Iterator[MigrationRecord]:
        stmt = select(schema_migration_table).order_by(schema_migration_table.c.id)
        for row in self.session.execute(stmt):
            yield _record_from_row(row)
