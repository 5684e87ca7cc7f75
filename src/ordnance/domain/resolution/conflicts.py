"""Conflict detection between source observations of one field."""

from __future__ import annotations

from statistics import fmean
from typing import TYPE_CHECKING

from ordnance.domain.model import ConflictDetail, ConflictValue, values_equal

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from ordnance.domain.model import SourceRecord


def group_by_value(sources: Sequence[SourceRecord]) -> list[list[SourceRecord]]:
    """Group records by structural, type-aware equality of their values, in first-seen order."""

    groups: list[list[SourceRecord]] = []
    for record in sources:
        for group in groups:
            if values_equal(group[0].value, record.value):
                group.append(record)
                break
        else:
            groups.append([record])
    return groups


def detect_conflict(
    sources: Sequence[SourceRecord],
    field_name: str,
    *,
    detected_at: datetime,
) -> ConflictDetail | None:
    """Return one representative per distinct value group, or ``None`` when all agree."""

    groups = group_by_value(sources)
    if len(groups) <= 1:
        return None
    return ConflictDetail(
        field=field_name,
        values=tuple(
            ConflictValue(
                source=group[0].source,
                value=group[0].value,
                timestamp=group[0].timestamp,
            )
            for group in groups
        ),
        detected_at=detected_at,
    )


def has_numeric_conflict(values: Sequence[float], threshold: float) -> bool:
    """Relative spread rule: ``(max - min) / |mean| > threshold``.

    A zero mean falls back to exact disagreement.
    """

    if len(values) < 2:  # noqa: PLR2004
        return False
    mean = fmean(values)
    if mean == 0:
        return len(set(values)) > 1
    return (max(values) - min(values)) / abs(mean) > threshold
