"""Typed contracts between the merge stages.

Responsibilities:
- ``SourcedRecord``: one provider's raw payload for one entity, as fetched
- ``NormalizedWeapon``: the canonical per-provider shape the merger groups by field
- ``NormalizePayload``: stage protocol turning raw payloads into the canonical shape
- merge statistics and results
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from ordnance.domain.model import (
        DataSource,
        FieldValue,
        LineageHistoryRecord,
        UnifiedWeapon,
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class SourcedRecord:
    source: DataSource
    payload: Mapping[str, Any]
    timestamp: datetime
    reference: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizedWeapon:
    """Canonical view of one provider payload; absent groups are empty, never missing."""

    name: str = ""
    game: str = ""
    category: str = ""
    stats: Mapping[str, FieldValue] = field(default_factory=dict)
    ballistics: Mapping[str, FieldValue] = field(default_factory=dict)
    meta: Mapping[str, FieldValue] = field(default_factory=dict)
    attachment_slots: Mapping[str, tuple[object, ...]] = field(default_factory=dict)
    best_for: tuple[object, ...] = ()
    playstyles: tuple[object, ...] = ()
    image_url: str | None = None
    icon_url: str | None = None

    def group(self, name: str) -> Mapping[str, FieldValue]:
        match name:
            case "stats":
                return self.stats
            case "ballistics":
                return self.ballistics
            case "meta":
                return self.meta
            case _:
                raise KeyError(name)


class NormalizePayload(Protocol):
    """Turn one provider's raw payload into the canonical shape."""

    def __call__(self, source: DataSource, payload: Mapping[str, Any]) -> NormalizedWeapon: ...


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeStats:
    sources_processed: int
    fields_resolved: int
    conflicts_detected: int
    conflicts_resolved: int
    average_confidence: float


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeResult:
    """Merged entity plus collected (never raised) warnings and validation errors.

    ``history`` lists the fields whose value changed against the existing entity.
    """

    weapon: UnifiedWeapon
    stats: MergeStats
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    history: tuple[LineageHistoryRecord, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors
