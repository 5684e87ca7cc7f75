"""Per-entity merge of every provider's payload into one unified weapon.

Stages, in order:
- normalize each raw payload into ``NormalizedWeapon``; an unreadable payload is
  skipped with a warning
- rank sources by priority; the merged identity and canonical id come from the ranking,
  never from input order
- warn (never abort) when sources disagree on the weapon's identity
- per field: collect observations, drop low-confidence ones unless that would empty
  the field, resolve with the category's strategy, wrap with lineage
- union attachment slots and tag lists
- aggregate entity lineage, validate, diff against the existing entity, and compute
  merge statistics
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ordnance.domain.errors import NoSourcesError
from ordnance.domain.lineage import LineageBuilder
from ordnance.domain.model import (
    BALLISTICS_STRUCTURED_FIELDS,
    FIELD_GROUPS,
    META_CATEGORICAL_FIELDS,
    SourceRecord,
    UnifiedWeapon,
    normalize_category,
    normalize_game_name,
    source_priority,
)
from ordnance.domain.resolution import ConflictResolver
from ordnance.domain.settings import MergeConfig

from . import identity
from .attachments import merge_attachments, merge_string_lists
from .contracts import MergeResult, MergeStats
from .validation import validate_unified_weapon

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ordnance.domain.model import MultiSourceField, ResolutionStrategy

    from .contracts import NormalizedWeapon, NormalizePayload, SourcedRecord

log = logging.getLogger(__name__)

type _Normalized = tuple[SourcedRecord, NormalizedWeapon]


@dataclass(frozen=True, slots=True, kw_only=True)
class SchemaMerger:
    normalize: NormalizePayload
    config: MergeConfig = field(default_factory=MergeConfig)
    lineage: LineageBuilder = field(default_factory=LineageBuilder)
    resolver: ConflictResolver = field(default_factory=ConflictResolver)

    def identify(self, records: Sequence[SourcedRecord], *, game_hint: str | None = None) -> str:
        """Canonical id of the weapon ``records`` describe, whatever their order.

        ``game_hint`` is used when no source reports a game.
        """

        ranked, _ = self._rank(records)
        name, game = _merged_identity(ranked, game_hint)
        return identity.entity_id(name, game)

    def merge_entities(
        self,
        entity_id: str | None,
        records: Sequence[SourcedRecord],
        existing: UnifiedWeapon | None = None,
        *,
        game_hint: str | None = None,
    ) -> MergeResult:
        """Merge ``records`` into one weapon.

        Raises ``NoSourcesError`` when ``records`` is empty or none of them can be read.
        Validation problems and identity mismatches are returned on the result instead
        of raised. Without ``entity_id`` the id is derived from the merged name and game.
        """

        now = self.lineage.confidence.now()
        ranked, warnings = self._rank(records)
        warnings.extend(self._identity_warnings(ranked))

        groups: dict[str, dict[str, MultiSourceField]] = {}
        for group_name, field_names in FIELD_GROUPS.items():
            groups[group_name] = {
                name: self._merge_field(group_name, name, ranked) for name in field_names
            }

        fields = [value for group in groups.values() for value in group.values()]
        lineage = self.lineage.aggregate_lineage(fields, now=now)
        name, game = _merged_identity(ranked, game_hint)
        category = _pick_string(ranked, lambda item: item.category)
        canonical_category = normalize_category(category)
        weapon = UnifiedWeapon(
            id=entity_id or identity.entity_id(name, game),
            name=name,
            game=game,
            category=canonical_category.value if canonical_category else category,
            stats=groups["stats"],
            ballistics=groups["ballistics"],
            meta=groups["meta"],
            lineage=lineage,
            created_at=existing.created_at if existing is not None else now,
            updated_at=now,
            attachment_slots=merge_attachments(item.attachment_slots for _, item in ranked),
            best_for=merge_string_lists(item.best_for for _, item in ranked),
            playstyles=merge_string_lists(item.playstyles for _, item in ranked),
            image_url=_pick_optional(ranked, lambda item: item.image_url),
            icon_url=_pick_optional(ranked, lambda item: item.icon_url),
        )

        validation = validate_unified_weapon(weapon, now=now)
        history = self.lineage.field_history(existing, weapon) if existing is not None else ()
        conflicts = sum(1 for value in fields if value.has_conflict)
        resolved = sum(
            1
            for value in fields
            if value.conflict_details is not None and value.conflict_details.resolved
        )
        stats = MergeStats(
            sources_processed=len(records),
            fields_resolved=sum(1 for value in fields if not value.is_default),
            conflicts_detected=conflicts,
            conflicts_resolved=resolved,
            average_confidence=lineage.average_confidence,
        )
        log.info(
            "Merged %s (%s) from %d sources: fields=%d conflicts=%d confidence=%.3f "
            "errors=%d changes=%d",
            weapon.name,
            weapon.id,
            stats.sources_processed,
            stats.fields_resolved,
            stats.conflicts_detected,
            stats.average_confidence,
            len(validation.errors),
            len(history),
        )
        return MergeResult(
            weapon=weapon,
            stats=stats,
            warnings=(*warnings, *validation.warnings),
            errors=validation.errors,
            history=history,
        )

    def _rank(self, records: Sequence[SourcedRecord]) -> tuple[list[_Normalized], list[str]]:
        """Normalize ``records`` and order them by priority, then newest first."""

        if not records:
            raise NoSourcesError
        warnings: list[str] = []
        normalized: list[_Normalized] = []
        for record in records:
            try:
                normalized.append((record, self.normalize(record.source, record.payload)))
            except ValueError as exc:
                message = f"Skipped unreadable {record.source} payload: {exc}"
                log.warning(message)
                warnings.append(message)
        if not normalized:
            raise NoSourcesError("no readable sources provided")
        normalized.sort(
            key=lambda pair: (
                source_priority(pair[0].source),
                pair[0].source.ordinal,
                -pair[0].timestamp.timestamp(),
            )
        )
        return normalized, warnings

    def _identity_warnings(self, ranked: Sequence[_Normalized]) -> list[str]:
        """Compare every source against the best-ranked one; a missing game matches any."""

        lead_record, lead = ranked[0]
        lead_name, lead_game = identity.identity_key(lead.name, lead.game)
        warnings: list[str] = []
        for record, weapon in ranked[1:]:
            name, game = identity.identity_key(weapon.name, weapon.game)
            if name == lead_name and (not game or not lead_game or game == lead_game):
                continue
            message = (
                f"Identity mismatch: {record.source} reports {weapon.name!r} ({weapon.game}) "
                f"but {lead_record.source} reports {lead.name!r} ({lead.game})"
            )
            log.warning(message)
            warnings.append(message)
        return warnings

    def _merge_field(
        self,
        group_name: str,
        field_name: str,
        ranked: Sequence[_Normalized],
    ) -> MultiSourceField:
        path = f"{group_name}.{field_name}"
        observations = _collect_observations(group_name, field_name, ranked)
        if not observations:
            return self.lineage.default_field()

        confidence = self.lineage.confidence
        usable = [
            record
            for record in observations
            if confidence.calculate(record.source, record.timestamp).value
            >= self.config.min_confidence_threshold
        ]
        if not usable:
            log.debug("All sources for %s are below the confidence threshold; using all", path)
            usable = observations

        resolution = self.resolver.resolve(
            usable, self._strategy_for(group_name, field_name), field_name=path
        )
        kept = observations if self.config.preserve_all_sources else usable
        return self.lineage.build_resolved_field(kept, path, resolution)

    def _strategy_for(self, group_name: str, field_name: str) -> ResolutionStrategy | None:
        match group_name:
            case "stats":
                return self.config.stat_strategy
            case "meta" if field_name in META_CATEGORICAL_FIELDS:
                return self.config.meta_tier_strategy
            case "meta":
                return self.config.meta_numeric_strategy
            case "ballistics" if field_name in BALLISTICS_STRUCTURED_FIELDS:
                return self.config.ballistics_structured_strategy
            case "ballistics":
                return self.config.ballistics_scalar_strategy
            case _:
                raise KeyError(group_name)


def _collect_observations(
    group_name: str,
    field_name: str,
    ranked: Sequence[_Normalized],
) -> list[SourceRecord]:
    """One observation per provider; a repeated provider keeps its newest payload."""

    by_source: dict[object, SourceRecord] = {}
    for record, weapon in ranked:
        value = weapon.group(group_name).get(field_name)
        if value is None:
            continue
        observation = SourceRecord(
            source=record.source,
            value=value,
            timestamp=record.timestamp,
            reference=record.reference,
            notes=record.notes,
        )
        current = by_source.get(record.source)
        if current is None or observation.timestamp > current.timestamp:
            by_source[record.source] = observation
    return list(by_source.values())


def _pick_string(
    ranked: Sequence[_Normalized], getter: Callable[[NormalizedWeapon], str]
) -> str:
    return next((getter(weapon) for _, weapon in ranked if getter(weapon).strip()), "")


def _pick_optional(
    ranked: Sequence[_Normalized], getter: Callable[[NormalizedWeapon], str | None]
) -> str | None:
    return next((value for _, weapon in ranked if (value := getter(weapon))), None)


def _merged_identity(ranked: Sequence[_Normalized], game_hint: str | None) -> tuple[str, str]:
    """Name and canonical game from the best-ranked sources that report them."""

    name = _pick_string(ranked, lambda item: item.name).strip()
    game = _pick_string(ranked, lambda item: item.game).strip() or (game_hint or "").strip()
    canonical_game = normalize_game_name(game)
    return name, canonical_game.value if canonical_game else game
