"""Environment loaders for reconciliation tuning values."""

from __future__ import annotations

import os

from ordnance.domain.model import ResolutionStrategy
from ordnance.domain.settings import (
    DEFAULT_AUDIT_BATCH_SIZE,
    ConfidenceConfig,
    MergeConfig,
    MigrationConfig,
    ResolverConfig,
)

from .env import env_float, env_int
from .errors import InvalidConfigurationError

_AUTO_STRATEGY = "auto"


def get_confidence_config() -> ConfidenceConfig:
    defaults = ConfidenceConfig()
    try:
        return ConfidenceConfig(
            decay_rate=env_float("ORDNANCE_DECAY_RATE", defaults.decay_rate),
            stale_threshold_days=env_float(
                "ORDNANCE_STALE_THRESHOLD_DAYS", defaults.stale_threshold_days
            ),
        )
    except ValueError as exc:
        raise InvalidConfigurationError(str(exc)) from exc


def get_resolver_config() -> ResolverConfig:
    defaults = ResolverConfig()
    try:
        return ResolverConfig(
            numeric_threshold=env_float(
                "ORDNANCE_NUMERIC_CONFLICT_THRESHOLD", defaults.numeric_threshold
            ),
            max_age_days=env_float("ORDNANCE_MAX_SOURCE_AGE_DAYS", defaults.max_age_days),
        )
    except ValueError as exc:
        raise InvalidConfigurationError(str(exc)) from exc


def parse_strategy(value: str | None) -> ResolutionStrategy | None:
    """Parse a strategy name; ``"auto"`` selects one per field at merge time."""

    if value is None or value.strip().lower() == _AUTO_STRATEGY:
        return None
    try:
        return ResolutionStrategy(value.strip().lower())
    except ValueError as exc:
        raise InvalidConfigurationError(f"Unknown resolution strategy: {value!r}") from exc


def _strategy_override(
    name: str, default: ResolutionStrategy | None
) -> ResolutionStrategy | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return parse_strategy(value)


def get_merge_config() -> MergeConfig:
    defaults = MergeConfig()
    try:
        return MergeConfig(
            stat_strategy=_strategy_override("ORDNANCE_STAT_STRATEGY", defaults.stat_strategy),
            meta_tier_strategy=_strategy_override(
                "ORDNANCE_TIER_STRATEGY", defaults.meta_tier_strategy
            ),
            min_confidence_threshold=env_float(
                "ORDNANCE_MIN_CONFIDENCE", defaults.min_confidence_threshold
            ),
        )
    except ValueError as exc:
        raise InvalidConfigurationError(str(exc)) from exc


def get_migration_config() -> MigrationConfig:
    try:
        return MigrationConfig(
            audit_batch_size=env_int("ORDNANCE_AUDIT_BATCH_SIZE", DEFAULT_AUDIT_BATCH_SIZE)
        )
    except ValueError as exc:
        raise InvalidConfigurationError(str(exc)) from exc
