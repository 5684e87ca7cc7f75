"""Resolution of disagreeing source observations into one value.

Responsibilities:
- decide whether a set of observations is in conflict
- pick a resolution strategy when none is configured
- apply one of the five strategies and report how the value was chosen

Per-source weights used here come from ``priority_confidence`` (static priority rank
with a linear freshness penalty). They only rank and weight observations; the
confidence persisted on a field is always computed by ``ConfidenceModel``.

Ties are broken by the lowest ``DataSource`` declaration order, then input order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from statistics import fmean, pvariance
from typing import TYPE_CHECKING, assert_never, cast

from ordnance.domain.clock import Clock, age_in_days, utcnow
from ordnance.domain.errors import NoSourcesError, UnknownStrategyError, ZeroWeightError
from ordnance.domain.model import (
    ResolutionStrategy,
    ValueKind,
    fields_kind,
    is_numeric,
    source_priority,
    values_equal,
)
from ordnance.domain.settings import ResolverConfig

from .conflicts import group_by_value, has_numeric_conflict

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from ordnance.domain.model import DataSource, FieldValue, SourceRecord

log = logging.getLogger(__name__)

type SourceWeigher = Callable[[SourceRecord, datetime], float]
type _Weighted = tuple[SourceRecord, float]


def priority_confidence(record: SourceRecord, now: datetime) -> float:
    """Weight from priority rank (10% per rank, floor 0.3) and age (1% per day, floor 0.5)."""

    priority_factor = max(0.3, 1.0 - (source_priority(record.source) - 1) * 0.1)
    freshness = max(0.5, 1.0 - age_in_days(record.timestamp, now) * 0.01)
    return priority_factor * freshness


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolutionResult:
    value: FieldValue
    strategy: ResolutionStrategy
    had_conflict: bool
    confidence: float
    primary_source: DataSource
    contributing_sources: tuple[DataSource, ...]
    conflict_count: int = 0
    variance: float | None = None
    consensus_count: int | None = None
    average_age_days: float = 0.0


def _tie_key(record: SourceRecord) -> int:
    return -record.source.ordinal


def _best(
    weighted: Sequence[_Weighted],
    key: Callable[[_Weighted], float],
) -> _Weighted:
    # max() keeps the first of equal keys, so input order is the final tie-break.
    return max(weighted, key=lambda item: (key(item), _tie_key(item[0])))


@dataclass(frozen=True, slots=True)
class ConflictResolver:
    config: ResolverConfig = field(default_factory=ResolverConfig)
    clock: Clock = utcnow
    weigh: SourceWeigher = priority_confidence

    def has_conflict(self, sources: Sequence[SourceRecord]) -> bool:
        """Numeric fields use the relative spread rule; everything else exact equality."""

        values = [record.value for record in sources]
        if values and all(is_numeric(value) for value in values):
            numbers = [float(cast("float", value)) for value in values]
            return has_numeric_conflict(numbers, self.config.numeric_threshold)
        return len(group_by_value(sources)) > 1

    def select_strategy(self, sources: Sequence[SourceRecord]) -> ResolutionStrategy:
        now = self.clock()
        kind = fields_kind([record.value for record in sources])
        match kind:
            case ValueKind.NUMERIC:
                weights = [self.weigh(record, now) for record in sources]
                spread = max(weights) - min(weights) if weights else 0.0
                if spread > self.config.confidence_spread_threshold:
                    return ResolutionStrategy.WEIGHTED_AVERAGE
                return ResolutionStrategy.HIGHEST_CONFIDENCE
            case ValueKind.CATEGORICAL:
                if len(sources) >= self.config.consensus_min_sources:
                    return ResolutionStrategy.CONSENSUS
                return ResolutionStrategy.PRIORITY_BASED
            case ValueKind.STRUCTURED:
                return ResolutionStrategy.MOST_RECENT
            case ValueKind.MISSING:
                return ResolutionStrategy.PRIORITY_BASED
            case _:
                assert_never(kind)

    def resolve(
        self,
        sources: Sequence[SourceRecord],
        strategy: ResolutionStrategy | str | None = None,
        *,
        field_name: str | None = None,
    ) -> ResolutionResult:
        """Resolve ``sources`` to one value.

        Raises ``NoSourcesError`` for an empty input, ``UnknownStrategyError`` for an
        unrecognised strategy and ``ZeroWeightError`` when a weighted average has
        nothing to weigh.
        """

        if not sources:
            raise NoSourcesError
        resolved_strategy = (
            self.select_strategy(sources) if strategy is None else _coerce_strategy(strategy)
        )
        now = self.clock()
        candidates = self._usable_sources(sources, now)
        weighted = [(record, self.weigh(record, now)) for record in candidates]
        average_age = fmean(age_in_days(record.timestamp, now) for record in candidates)

        if len(candidates) == 1:
            record, weight = weighted[0]
            return ResolutionResult(
                value=record.value,
                strategy=resolved_strategy,
                had_conflict=False,
                confidence=weight,
                primary_source=record.source,
                contributing_sources=(record.source,),
                average_age_days=average_age,
            )

        had_conflict = self.has_conflict(candidates)
        match resolved_strategy:
            case ResolutionStrategy.WEIGHTED_AVERAGE:
                result = self._weighted_average(weighted, had_conflict, field_name)
            case ResolutionStrategy.HIGHEST_CONFIDENCE:
                result = self._pick(
                    weighted, resolved_strategy, had_conflict, key=lambda item: item[1]
                )
            case ResolutionStrategy.MOST_RECENT:
                result = self._pick(
                    weighted,
                    resolved_strategy,
                    had_conflict,
                    key=lambda item: item[0].timestamp.timestamp(),
                )
            case ResolutionStrategy.PRIORITY_BASED:
                result = self._pick(
                    weighted,
                    resolved_strategy,
                    had_conflict,
                    key=lambda item: -source_priority(item[0].source),
                )
            case ResolutionStrategy.CONSENSUS:
                result = self._consensus(weighted, had_conflict)
            case _:
                assert_never(resolved_strategy)

        log.debug(
            "Resolved %s via %s: value=%r primary=%s conflict=%s",
            field_name or "<field>",
            resolved_strategy,
            result.value,
            result.primary_source,
            result.had_conflict,
        )
        return replace(result, average_age_days=average_age)

    def _usable_sources(
        self, sources: Sequence[SourceRecord], now: datetime
    ) -> list[SourceRecord]:
        if not self.config.consider_timestamp:
            return list(sources)
        fresh = [
            record
            for record in sources
            if age_in_days(record.timestamp, now) <= self.config.max_age_days
        ]
        return fresh or list(sources)

    def _weighted_average(
        self,
        weighted: Sequence[_Weighted],
        had_conflict: bool,  # noqa: FBT001
        field_name: str | None,
    ) -> ResolutionResult:
        numeric = [(record, weight) for record, weight in weighted if is_numeric(record.value)]
        total_weight = sum(weight for _, weight in numeric)
        if not numeric or total_weight <= 0:
            raise ZeroWeightError(field_name)
        values = [float(cast("float", record.value)) for record, _ in numeric]
        if len(set(values)) == 1:
            resolved: float = values[0]
        else:
            weighted_sum = sum(
                value * weight for value, (_, weight) in zip(values, numeric, strict=True)
            )
            resolved = weighted_sum / total_weight
        closest = min(
            zip(values, numeric, strict=True),
            key=lambda pair: (abs(pair[0] - resolved), pair[1][0].source.ordinal),
        )
        return ResolutionResult(
            value=resolved,
            strategy=ResolutionStrategy.WEIGHTED_AVERAGE,
            had_conflict=had_conflict,
            confidence=total_weight / len(numeric),
            primary_source=closest[1][0].source,
            contributing_sources=tuple(record.source for record, _ in numeric),
            conflict_count=len(numeric) if had_conflict else 0,
            variance=pvariance(values),
        )

    def _pick(
        self,
        weighted: Sequence[_Weighted],
        strategy: ResolutionStrategy,
        had_conflict: bool,  # noqa: FBT001
        *,
        key: Callable[[_Weighted], float],
    ) -> ResolutionResult:
        record, weight = _best(weighted, key)
        disagreeing = sum(1 for other, _ in weighted if not values_equal(other.value, record.value))
        return ResolutionResult(
            value=record.value,
            strategy=strategy,
            had_conflict=had_conflict,
            confidence=weight,
            primary_source=record.source,
            contributing_sources=tuple(other.source for other, _ in weighted),
            conflict_count=disagreeing if had_conflict else 0,
        )

    def _consensus(
        self,
        weighted: Sequence[_Weighted],
        had_conflict: bool,  # noqa: FBT001
    ) -> ResolutionResult:
        weights = {id(record): weight for record, weight in weighted}
        groups = group_by_value([record for record, _ in weighted])
        winner = max(
            groups,
            key=lambda group: (len(group), -min(record.source.ordinal for record in group)),
        )
        members = [(record, weights[id(record)]) for record in winner]
        primary, _ = _best(members, key=lambda item: item[1])
        return ResolutionResult(
            value=primary.value,
            strategy=ResolutionStrategy.CONSENSUS,
            had_conflict=had_conflict,
            confidence=fmean(weight for _, weight in members),
            primary_source=primary.source,
            contributing_sources=tuple(record.source for record in winner),
            conflict_count=len(weighted) - len(winner),
            consensus_count=len(winner),
        )


def _coerce_strategy(strategy: ResolutionStrategy | str) -> ResolutionStrategy:
    if isinstance(strategy, ResolutionStrategy):
        return strategy
    try:
        return ResolutionStrategy(strategy)
    except ValueError as exc:
        raise UnknownStrategyError(strategy) from exc

