"""Immutable tuning values for the reconciliation core.

Constructed once (see ``ordnance.config.reconciliation`` for environment loading) and
passed explicitly to the components that need them.
"""

from __future__ import annotations

from dataclasses import dataclass

from .model import ResolutionStrategy

DEFAULT_AUDIT_BATCH_SIZE = 500


def _require_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value}")


@dataclass(frozen=True, slots=True, kw_only=True)
class ConfidenceConfig:
    decay_rate: float = 0.05
    stale_threshold_days: float = 30.0
    min_quality: float = 0.5
    max_quality: float = 1.0
    conflict_penalty: float = 0.05
    max_conflict_penalty: float = 0.3

    def __post_init__(self) -> None:
        if self.decay_rate < 0:
            raise ValueError(f"decay_rate must be non-negative, got {self.decay_rate}")
        if self.stale_threshold_days < 0:
            raise ValueError("stale_threshold_days must be non-negative")
        _require_unit_interval("min_quality", self.min_quality)
        _require_unit_interval("max_quality", self.max_quality)
        if self.min_quality > self.max_quality:
            raise ValueError("min_quality must not exceed max_quality")
        _require_unit_interval("conflict_penalty", self.conflict_penalty)
        _require_unit_interval("max_conflict_penalty", self.max_conflict_penalty)


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolverConfig:
    numeric_threshold: float = 0.15
    consider_timestamp: bool = True
    max_age_days: float = 30.0
    confidence_spread_threshold: float = 0.2
    consensus_min_sources: int = 3

    def __post_init__(self) -> None:
        if self.numeric_threshold < 0:
            raise ValueError("numeric_threshold must be non-negative")
        if self.max_age_days < 0:
            raise ValueError("max_age_days must be non-negative")


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeConfig:
    """Per-category resolution strategies; ``None`` infers one per field."""

    stat_strategy: ResolutionStrategy | None = ResolutionStrategy.WEIGHTED_AVERAGE
    meta_tier_strategy: ResolutionStrategy | None = ResolutionStrategy.CONSENSUS
    meta_numeric_strategy: ResolutionStrategy | None = ResolutionStrategy.WEIGHTED_AVERAGE
    ballistics_structured_strategy: ResolutionStrategy | None = (
        ResolutionStrategy.HIGHEST_CONFIDENCE
    )
    ballistics_scalar_strategy: ResolutionStrategy | None = ResolutionStrategy.HIGHEST_CONFIDENCE
    preserve_all_sources: bool = True
    min_confidence_threshold: float = 0.3

    def __post_init__(self) -> None:
        _require_unit_interval("min_confidence_threshold", self.min_confidence_threshold)


@dataclass(frozen=True, slots=True, kw_only=True)
class MigrationConfig:
    audit_batch_size: int = DEFAULT_AUDIT_BATCH_SIZE

    def __post_init__(self) -> None:
        if self.audit_batch_size <= 0:
            raise ValueError("audit_batch_size must be positive")
