"""SQLAlchemy table metadata for stored weapon documents and the migration audit log."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
)

from ordnance.domain.model import SchemaVersion

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

_schema_version_type = Enum(
    SchemaVersion,
    native_enum=False,
    values_callable=lambda enum: [member.value for member in enum],
)

weapon_document_table = Table(
    "weapon_document",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=True),
    Column("game", String, nullable=True),
    Column("schema_version", _schema_version_type, nullable=False),
    Column("document", JSON, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_weapon_document_schema_version", "schema_version"),
)

schema_migration_table = Table(
    "schema_migration",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_id", String, nullable=False),
    Column("entity_name", String, nullable=True),
    Column("from_version", _schema_version_type, nullable=False),
    Column("to_version", _schema_version_type, nullable=False),
    Column("timestamp", UTCDateTime(), nullable=False),
    Column("success", Boolean, nullable=False),
    Column("error", String, nullable=True),
    Column("duration_ms", Float, nullable=True),
    Column("details", JSON, nullable=False, default=dict),
    Index("ix_schema_migration_entity_id", "entity_id"),
    Index("ix_schema_migration_timestamp", "timestamp"),
)


def create_all_tables(engine: Engine) -> None:
    """Create any missing tables; existing ones are left untouched."""

    metadata.create_all(engine, checkfirst=True)
    log.debug("Ensured tables %s", ", ".join(sorted(metadata.tables)))
