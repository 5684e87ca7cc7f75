"""Provenance value objects: source observations, confidence, and multi-source fields."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import DataSource, ResolutionStrategy
from .values import values_equal

if TYPE_CHECKING:
    from datetime import datetime

    from .values import FieldValue


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceRecord:
    """One provider's timestamped observation of one field."""

    source: DataSource
    value: FieldValue
    timestamp: datetime
    reference: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ConfidenceScore:
    """Composite trust score; ``value`` is always derived from the components."""

    source_reliability: float
    freshness: float
    quality: float
    calculated_at: datetime

    def __post_init__(self) -> None:
        for name in ("source_reliability", "freshness", "quality"):
            component = getattr(self, name)
            if not 0.0 <= component <= 1.0:
                raise ValueError(f"Confidence component {name} out of range: {component}")

    @property
    def value(self) -> float:
        return clamp(self.source_reliability * self.freshness * self.quality)

    @classmethod
    def zero(cls, calculated_at: datetime) -> ConfidenceScore:
        return cls(source_reliability=0.0, freshness=0.0, quality=0.0, calculated_at=calculated_at)


@dataclass(frozen=True, slots=True, kw_only=True)
class ConflictValue:
    source: DataSource
    value: FieldValue
    timestamp: datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class ConflictDetail:
    """Distinct value groups observed for one field, one representative per group."""

    field: str
    values: tuple[ConflictValue, ...]
    detected_at: datetime
    resolved: bool = False
    resolution: ResolutionStrategy | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class MultiSourceField:
    """A resolved field value with every contributing observation.

    Either a regular field (at least one source, ``primary_source`` is exactly one of
    them) or a default field (no sources, ``UNKNOWN`` primary, zero confidence).
    """

    sources: tuple[SourceRecord, ...]
    current_value: FieldValue
    primary_source: DataSource
    confidence: ConfidenceScore
    last_updated: datetime
    has_conflict: bool = False
    conflict_details: ConflictDetail | None = None

    def __post_init__(self) -> None:
        if not self.sources:
            if self.primary_source is not DataSource.UNKNOWN:
                raise ValueError("Default field must use the unknown primary source")
            if self.has_conflict:
                raise ValueError("Default field cannot be in conflict")
            return
        matches = sum(1 for record in self.sources if record.source is self.primary_source)
        if matches != 1:
            raise ValueError(
                f"Primary source {self.primary_source} must match exactly one source record"
            )
        if self.has_conflict and not _has_distinct_values(self.sources):
            raise ValueError("Conflicted field requires at least two distinct values")

    @property
    def is_default(self) -> bool:
        return not self.sources

    @property
    def source_types(self) -> tuple[DataSource, ...]:
        return tuple(record.source for record in self.sources)

    @classmethod
    def default(cls, *, at: datetime, value: FieldValue = None) -> MultiSourceField:
        """Placeholder for a field no provider supplied."""

        return cls(
            sources=(),
            current_value=value,
            primary_source=DataSource.UNKNOWN,
            confidence=ConfidenceScore.zero(at),
            last_updated=at,
        )


def _has_distinct_values(sources: tuple[SourceRecord, ...]) -> bool:
    if len(sources) < 2:  # noqa: PLR2004
        return False
    first = sources[0].value
    return any(not values_equal(record.value, first) for record in sources[1:])


@dataclass(frozen=True, slots=True, kw_only=True)
class LineageMetadata:
    """Entity-level aggregation of provenance across all fields."""

    total_sources: int
    average_confidence: float
    conflict_count: int
    stale_data_count: int
    last_updated: datetime
    last_validated: datetime
    contributing_sources: tuple[DataSource, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.average_confidence <= 1.0:
            raise ValueError(f"Average confidence out of range: {self.average_confidence}")
        if self.total_sources != len(set(self.contributing_sources)):
            raise ValueError("total_sources must count distinct contributing sources")


@dataclass(frozen=True, slots=True, kw_only=True)
class LineageHistoryRecord:
    """A field value replaced by a merge; the change log entry a document store keeps."""

    weapon_id: str
    field: str
    old_value: FieldValue
    new_value: FieldValue
    source: DataSource
    timestamp: datetime
    confidence: ConfidenceScore
    reason: str | None = None
    reference: str | None = None
