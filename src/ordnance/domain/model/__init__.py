"""Domain model for multi-source weapon data."""

from __future__ import annotations

from .entity import (
    BALLISTICS_FIELDS,
    BALLISTICS_SCALAR_FIELDS,
    BALLISTICS_STRUCTURED_FIELDS,
    FIELD_GROUPS,
    META_CATEGORICAL_FIELDS,
    META_FIELDS,
    META_NUMERIC_FIELDS,
    STAT_FIELDS,
    UnifiedWeapon,
)
from .enums import (
    LATEST_SCHEMA_VERSION,
    DataSource,
    Game,
    ResolutionStrategy,
    SchemaVersion,
    Staleness,
    Tier,
    ValueKind,
    WeaponCategory,
)
from .lineage import (
    ConfidenceScore,
    ConflictDetail,
    ConflictValue,
    LineageHistoryRecord,
    LineageMetadata,
    MultiSourceField,
    SourceRecord,
)
from .migration import MigrationRecord, MigrationStats
from .naming import normalize_category, normalize_game_name, normalize_identity
from .sources import parse_data_source, source_priority, source_reliability
from .values import FieldValue, fields_kind, is_numeric, value_kind, values_equal

__all__ = [
    "BALLISTICS_FIELDS",
    "BALLISTICS_SCALAR_FIELDS",
    "BALLISTICS_STRUCTURED_FIELDS",
    "FIELD_GROUPS",
    "LATEST_SCHEMA_VERSION",
    "META_CATEGORICAL_FIELDS",
    "META_FIELDS",
    "META_NUMERIC_FIELDS",
    "STAT_FIELDS",
    "ConfidenceScore",
    "ConflictDetail",
    "ConflictValue",
    "DataSource",
    "FieldValue",
    "Game",
    "LineageHistoryRecord",
    "LineageMetadata",
    "MigrationRecord",
    "MigrationStats",
    "MultiSourceField",
    "ResolutionStrategy",
    "SchemaVersion",
    "SourceRecord",
    "Staleness",
    "Tier",
    "UnifiedWeapon",
    "ValueKind",
    "WeaponCategory",
    "fields_kind",
    "is_numeric",
    "normalize_category",
    "normalize_game_name",
    "normalize_identity",
    "parse_data_source",
    "source_priority",
    "source_reliability",
    "value_kind",
    "values_equal",
]
