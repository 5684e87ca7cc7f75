"""Construction of multi-source fields and entity-level lineage.

Fields are always rebuilt from their complete source list; nothing patches a
field's confidence or conflict state in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from ordnance.domain.errors import EmptyFieldError
from ordnance.domain.model import (
    LineageHistoryRecord,
    LineageMetadata,
    MultiSourceField,
    source_reliability,
    values_equal,
)
from ordnance.domain.model.lineage import clamp
from ordnance.domain.resolution import detect_conflict

from .confidence import ConfidenceModel

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from ordnance.domain.model import (
        ConfidenceScore,
        ConflictDetail,
        DataSource,
        FieldValue,
        SourceRecord,
        UnifiedWeapon,
    )
    from ordnance.domain.resolution import ResolutionResult


def select_primary_source(sources: Sequence[SourceRecord]) -> SourceRecord:
    """Most reliable source, then most recent, then lowest declaration order."""

    return max(
        sources,
        key=lambda record: (
            source_reliability(record.source),
            record.timestamp,
            -record.source.ordinal,
        ),
    )


@dataclass(frozen=True, slots=True)
class LineageBuilder:
    confidence: ConfidenceModel = field(default_factory=ConfidenceModel)

    def build_field(self, sources: Sequence[SourceRecord], field_name: str) -> MultiSourceField:
        """Wrap ``sources`` into a field whose value comes from the primary source."""

        self._require_sources(sources, field_name)
        primary = select_primary_source(sources)
        return self._assemble(sources, field_name, primary=primary, value=primary.value)

    def build_resolved_field(
        self,
        sources: Sequence[SourceRecord],
        field_name: str,
        resolution: ResolutionResult,
    ) -> MultiSourceField:
        """Wrap ``sources`` around a value chosen by the conflict resolver."""

        self._require_sources(sources, field_name)
        primary = next(
            (record for record in sources if record.source is resolution.primary_source),
            None,
        )
        if primary is None:
            raise EmptyFieldError(
                f"Resolved primary source {resolution.primary_source} is not among the "
                f"sources of {field_name}"
            )
        built = self._assemble(sources, field_name, primary=primary, value=resolution.value)
        if built.conflict_details is None:
            return built
        resolved_detail = replace(
            built.conflict_details, resolved=True, resolution=resolution.strategy
        )
        return replace(built, conflict_details=resolved_detail)

    def default_field(self, value: FieldValue = None) -> MultiSourceField:
        """Explicit placeholder for a field no provider supplied."""

        return MultiSourceField.default(at=self.confidence.now(), value=value)

    def single_source_field(
        self,
        record: SourceRecord,
        confidence: ConfidenceScore,
    ) -> MultiSourceField:
        """Wrap one observation with a precomputed confidence (used by migrations)."""

        return MultiSourceField(
            sources=(record,),
            current_value=record.value,
            primary_source=record.source,
            confidence=confidence,
            last_updated=record.timestamp,
        )

    def add_or_update_source(
        self,
        existing: MultiSourceField,
        record: SourceRecord,
        field_name: str,
    ) -> MultiSourceField:
        """Replace the observation from ``record.source`` (or append it) and rebuild."""

        sources = list(existing.sources)
        for index, item in enumerate(sources):
            if item.source is record.source:
                sources[index] = record
                break
        else:
            sources.append(record)
        return self.build_field(sources, field_name)

    def aggregate_lineage(
        self,
        fields: Iterable[MultiSourceField],
        *,
        now: datetime | None = None,
    ) -> LineageMetadata:
        """Aggregate entity-level lineage across ``fields``.

        ``stale_data_count`` counts every stale observation in every field, so one
        stale provider supplying several fields is counted once per field.
        """

        moment = now or self.confidence.now()
        collected = list(fields)
        contributing: set[DataSource] = set()
        confidence_total = 0.0
        conflict_count = 0
        stale_count = 0
        for item in collected:
            contributing.update(item.source_types)
            confidence_total += item.confidence.value
            if item.has_conflict:
                conflict_count += 1
            stale_count += sum(
                1
                for record in item.sources
                if self.confidence.is_stale(record.timestamp, now=moment)
            )
        populated = [item.last_updated for item in collected if item.sources]
        average = clamp(confidence_total / len(collected)) if collected else 0.0
        return LineageMetadata(
            total_sources=len(contributing),
            average_confidence=average,
            conflict_count=conflict_count,
            stale_data_count=stale_count,
            last_updated=max(populated) if populated else moment,
            last_validated=moment,
            contributing_sources=tuple(sorted(contributing, key=lambda source: source.ordinal)),
        )

    def field_history(
        self, before: UnifiedWeapon, after: UnifiedWeapon
    ) -> tuple[LineageHistoryRecord, ...]:
        """One record per field whose resolved value differs between the two versions.

        Fields ``after`` leaves at their default are not reported.
        """

        now = self.confidence.now()
        changes: list[LineageHistoryRecord] = []
        for path, current in after.iter_fields():
            if current.is_default:
                continue
            group_name, _, field_name = path.partition(".")
            previous = before.group(group_name).get(field_name)
            old_value = None if previous is None or previous.is_default else previous.current_value
            if old_value is not None and values_equal(old_value, current.current_value):
                continue
            primary = next(
                record for record in current.sources if record.source is current.primary_source
            )
            changes.append(
                LineageHistoryRecord(
                    weapon_id=after.id,
                    field=path,
                    old_value=old_value,
                    new_value=current.current_value,
                    source=current.primary_source,
                    timestamp=now,
                    confidence=current.confidence,
                    reason=_change_reason(current, added=old_value is None),
                    reference=primary.reference,
                )
            )
        return tuple(changes)

    def _assemble(
        self,
        sources: Sequence[SourceRecord],
        field_name: str,
        *,
        primary: SourceRecord,
        value: FieldValue,
    ) -> MultiSourceField:
        conflict: ConflictDetail | None = detect_conflict(
            sources, field_name, detected_at=self.confidence.now()
        )
        conflict_count = len(conflict.values) - 1 if conflict else 0
        quality = self.confidence.data_quality(len(sources), conflict_count)
        return MultiSourceField(
            sources=tuple(sources),
            current_value=value,
            primary_source=primary.source,
            confidence=self.confidence.calculate(primary.source, primary.timestamp, quality),
            last_updated=max(record.timestamp for record in sources),
            has_conflict=conflict is not None,
            conflict_details=conflict,
        )

    @staticmethod
    def _require_sources(sources: Sequence[SourceRecord], field_name: str) -> None:
        if not sources:
            raise EmptyFieldError(
                f"Cannot build field {field_name!r} without sources; use default_field()"
            )


def _change_reason(current: MultiSourceField, *, added: bool) -> str:
    if current.conflict_details is not None and current.conflict_details.resolution:
        return (
            f"resolved by {current.conflict_details.resolution} "
            f"across {len(current.sources)} sources"
        )
    verb = "added" if added else "updated"
    return f"{verb} from {current.primary_source}"
