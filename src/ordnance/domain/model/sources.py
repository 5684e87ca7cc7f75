"""Static per-provider reliability and priority tables."""

from __future__ import annotations

import re
from typing import assert_never

from .enums import DataSource


def source_reliability(source: DataSource) -> float:
    """Return the fixed reliability weight of ``source`` in [0, 1]."""

    match source:
        case DataSource.OFFICIAL_API:
            return 1.0
        case DataSource.MANUAL:
            return 0.9
        case DataSource.CODARMORY:
            return 0.9
        case DataSource.WZSTATS:
            return 0.8
        case DataSource.WIKI:
            return 0.8
        case DataSource.CODMUNITY:
            return 0.7
        case DataSource.USER_SUBMISSION:
            return 0.6
        case DataSource.COMPUTED:
            return 0.6
        case DataSource.IMAGE_ANALYSIS:
            return 0.5
        case DataSource.UNKNOWN:
            return 0.3
        case _:
            assert_never(source)


def source_priority(source: DataSource) -> int:
    """Return the static priority rank of ``source`` (lower is preferred)."""

    match source:
        case DataSource.OFFICIAL_API | DataSource.MANUAL:
            return 1
        case DataSource.CODARMORY:
            return 2
        case DataSource.WZSTATS | DataSource.WIKI:
            return 3
        case DataSource.CODMUNITY:
            return 4
        case DataSource.USER_SUBMISSION | DataSource.COMPUTED:
            return 5
        case DataSource.IMAGE_ANALYSIS:
            return 6
        case DataSource.UNKNOWN:
            return 7
        case _:
            assert_never(source)


_SOURCE_ALIASES: dict[str, DataSource] = {
    "official": DataSource.OFFICIAL_API,
    "officialapi": DataSource.OFFICIAL_API,
    "api": DataSource.OFFICIAL_API,
    "user": DataSource.USER_SUBMISSION,
    "usersubmission": DataSource.USER_SUBMISSION,
    "community": DataSource.USER_SUBMISSION,
    "image": DataSource.IMAGE_ANALYSIS,
    "imageanalysis": DataSource.IMAGE_ANALYSIS,
    "ocr": DataSource.IMAGE_ANALYSIS,
    "wzstatsgg": DataSource.WZSTATS,
    "codarmorycom": DataSource.CODARMORY,
    "codmunitygg": DataSource.CODMUNITY,
}


def parse_data_source(label: object) -> DataSource:
    """Map a loose provider label ("CODArmory", "wz-stats", "official") to ``DataSource``.

    Unrecognised labels map to ``DataSource.UNKNOWN`` rather than failing.
    """

    if isinstance(label, DataSource):
        return label
    if not isinstance(label, str):
        return DataSource.UNKNOWN
    compact = re.sub(r"[^a-z0-9]", "", label.strip().lower())
    if not compact:
        return DataSource.UNKNOWN
    for source in DataSource:
        if compact == source.value.replace("_", ""):
            return source
    return _SOURCE_ALIASES.get(compact, DataSource.UNKNOWN)
