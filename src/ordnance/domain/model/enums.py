"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class DataSource(StrEnum):
    """Provider identities; declaration order is the deterministic tie-break order."""

    OFFICIAL_API = "official_api"
    MANUAL = "manual"
    CODARMORY = "codarmory"
    WZSTATS = "wzstats"
    WIKI = "wiki"
    CODMUNITY = "codmunity"
    USER_SUBMISSION = "user_submission"
    COMPUTED = "computed"
    IMAGE_ANALYSIS = "image_analysis"
    UNKNOWN = "unknown"

    @property
    def ordinal(self) -> int:
        return _SOURCE_ORDER.index(self)


_SOURCE_ORDER: tuple[DataSource, ...] = tuple(DataSource)


class SchemaVersion(StrEnum):
    """Record generations, ordered ``v1 < v2 < v3``."""

    V1 = "v1"
    V2 = "v2"
    V3 = "v3"

    @property
    def index(self) -> int:
        return _VERSION_ORDER.index(self)

    # StrEnum inherits str ordering; compare by generation instead.
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self.index < other.index

    def __le__(self, other: object) -> bool:
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self.index <= other.index

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self.index > other.index

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self.index >= other.index


_VERSION_ORDER: tuple[SchemaVersion, ...] = tuple(SchemaVersion)
LATEST_SCHEMA_VERSION = SchemaVersion.V3


class ResolutionStrategy(StrEnum):
    WEIGHTED_AVERAGE = "weighted_average"
    HIGHEST_CONFIDENCE = "highest_confidence"
    MOST_RECENT = "most_recent"
    PRIORITY_BASED = "priority_based"
    CONSENSUS = "consensus"


class ValueKind(StrEnum):
    """Closed set of value shapes a provider can report for a field."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    STRUCTURED = "structured"
    MISSING = "missing"


class Game(StrEnum):
    MW3 = "MW3"
    WARZONE = "Warzone"
    BO6 = "BO6"
    MW2 = "MW2"


class WeaponCategory(StrEnum):
    AR = "AR"
    SMG = "SMG"
    LMG = "LMG"
    SNIPER = "Sniper"
    MARKSMAN = "Marksman"
    SHOTGUN = "Shotgun"
    PISTOL = "Pistol"


class Tier(StrEnum):
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class Staleness(StrEnum):
    FRESH = "fresh"
    RECENT = "recent"
    STALE = "stale"
