"""Structural and range validation for weapon records.

Violations are collected and returned, never raised; the caller decides whether an
invalid record is accepted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ordnance.domain.model import (
    STAT_FIELDS,
    Game,
    Tier,
    WeaponCategory,
    is_numeric,
)

if TYPE_CHECKING:
    from datetime import datetime

    from ordnance.domain.model import UnifiedWeapon

STAT_RANGE = (0.0, 100.0)
PERCENT_META_FIELDS = ("popularity", "pickRate", "winRate")


@dataclass(frozen=True, slots=True)
class ValidationResult:
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors

    def merged_with(self, other: ValidationResult) -> ValidationResult:
        return ValidationResult(
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
        )


def unwrap(value: object) -> object:
    """Current value of a wrapped field document, or the value itself when flat."""

    if isinstance(value, Mapping) and "currentValue" in value:
        return value["currentValue"]
    return value


def _as_mapping(value: object) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _check_identity(
    name: object, game: object, category: object, errors: list[str]
) -> None:
    if not isinstance(name, str) or not name.strip():
        errors.append("name is required")
    if not isinstance(game, str) or not game.strip():
        errors.append("game is required")
    elif game not in tuple(Game):
        errors.append(f"game {game!r} is not one of {', '.join(Game)}")
    if not isinstance(category, str) or not category.strip():
        errors.append("category is required")
    elif category not in tuple(WeaponCategory):
        errors.append(f"category {category!r} is not one of {', '.join(WeaponCategory)}")


def _check_range(path: str, value: object, errors: list[str]) -> None:
    if value is None:
        return
    if not is_numeric(value):
        errors.append(f"{path} must be a number, got {value!r}")
        return
    low, high = STAT_RANGE
    if not low <= float(value) <= high:  # type: ignore[arg-type]
        errors.append(f"{path} must be within {low:g}-{high:g}, got {value}")


def _check_positive(path: str, value: object, errors: list[str]) -> None:
    if value is None:
        return
    if not is_numeric(value) or float(value) <= 0:  # type: ignore[arg-type]
        errors.append(f"{path} must be a positive number, got {value!r}")


def _check_values(
    stats: Mapping[str, Any],
    ballistics: Mapping[str, Any],
    meta: Mapping[str, Any],
    errors: list[str],
    warnings: list[str],
) -> None:
    stat_values = {name: unwrap(stats[name]) for name in STAT_FIELDS if name in stats}
    for name, value in stat_values.items():
        _check_range(f"stats.{name}", value, errors)
    numeric_stats = [value for value in stat_values.values() if is_numeric(value)]
    if numeric_stats and all(value == 0 for value in numeric_stats):
        warnings.append("all stats are zero")

    tier = unwrap(meta.get("tier"))
    if tier is not None and tier not in tuple(Tier):
        errors.append(f"meta.tier {tier!r} is not one of {', '.join(Tier)}")
    for name in PERCENT_META_FIELDS:
        _check_range(f"meta.{name}", unwrap(meta.get(name)), errors)

    ttk = unwrap(ballistics.get("ttk"))
    if isinstance(ttk, Mapping):
        ttk_min, ttk_max = ttk.get("min"), ttk.get("max")
        _check_positive("ballistics.ttk.min", ttk_min, errors)
        if is_numeric(ttk_min) and is_numeric(ttk_max) and ttk_max < ttk_min:
            errors.append("ballistics.ttk.max must be >= ballistics.ttk.min")
    _check_positive("ballistics.fireRate", unwrap(ballistics.get("fireRate")), errors)
    _check_positive("ballistics.magazineSize", unwrap(ballistics.get("magazineSize")), errors)


def validate_weapon_document(document: Mapping[str, Any]) -> ValidationResult:
    """Generic checks for a weapon document of any schema version."""

    errors: list[str] = []
    warnings: list[str] = []
    _check_identity(document.get("name"), document.get("game"), document.get("category"), errors)
    _check_values(
        _as_mapping(document.get("stats")),
        _as_mapping(document.get("ballistics")),
        _as_mapping(document.get("meta")),
        errors,
        warnings,
    )
    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))


def validate_unified_weapon(weapon: UnifiedWeapon, *, now: datetime) -> ValidationResult:
    """Checks for a freshly merged weapon, including confidence and timestamp sanity."""

    errors: list[str] = []
    warnings: list[str] = []
    _check_identity(weapon.name, weapon.game, weapon.category, errors)
    _check_values(
        {name: value.current_value for name, value in weapon.stats.items()},
        {name: value.current_value for name, value in weapon.ballistics.items()},
        {name: value.current_value for name, value in weapon.meta.items()},
        errors,
        warnings,
    )
    for path, value in weapon.iter_fields():
        if not 0.0 <= value.confidence.value <= 1.0:
            errors.append(f"{path} confidence {value.confidence.value} is outside [0, 1]")
        if any(record.timestamp > now for record in value.sources):
            errors.append(f"{path} has a source timestamp in the future")
    if not 0.0 <= weapon.lineage.average_confidence <= 1.0:
        errors.append("lineage.averageConfidence is outside [0, 1]")
    for label, moment in (("createdAt", weapon.created_at), ("updatedAt", weapon.updated_at)):
        if moment > now:
            errors.append(f"{label} is in the future")
    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))
