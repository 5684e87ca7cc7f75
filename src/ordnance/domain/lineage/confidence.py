"""Confidence scoring for source observations.

``confidence = reliability(source) * exp(-decay_rate * age_days) * clamp(quality)``,
clamped to [0, 1]. This is the formula persisted on every multi-source field.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ordnance.domain.clock import Clock, age_in_days, utcnow
from ordnance.domain.model import ConfidenceScore, DataSource, source_reliability
from ordnance.domain.model.lineage import clamp
from ordnance.domain.settings import ConfidenceConfig

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class ConfidenceModel:
    config: ConfidenceConfig = field(default_factory=ConfidenceConfig)
    clock: Clock = utcnow

    def now(self) -> datetime:
        return self.clock()

    def age_days(self, timestamp: datetime, *, now: datetime | None = None) -> float:
        return age_in_days(timestamp, now or self.clock())

    def freshness(self, timestamp: datetime, *, now: datetime | None = None) -> float:
        return math.exp(-self.config.decay_rate * self.age_days(timestamp, now=now))

    def calculate(
        self,
        source: DataSource,
        timestamp: datetime,
        quality: float = 1.0,
    ) -> ConfidenceScore:
        now = self.clock()
        bounded_quality = clamp(quality, self.config.min_quality, self.config.max_quality)
        return ConfidenceScore(
            source_reliability=source_reliability(source),
            freshness=clamp(self.freshness(timestamp, now=now)),
            quality=clamp(bounded_quality),
            calculated_at=now,
        )

    def is_stale(self, timestamp: datetime, *, now: datetime | None = None) -> bool:
        return self.age_days(timestamp, now=now) > self.config.stale_threshold_days

    def data_quality(self, source_count: int, conflict_count: int) -> float:
        """Quality factor from corroboration (up to three sources) and disagreement."""

        if source_count <= 0:
            return 0.0
        coverage = min(source_count / 3, 1.0)
        penalty = min(
            conflict_count * self.config.conflict_penalty,
            self.config.max_conflict_penalty,
        )
        return coverage * (1.0 - penalty)

