"""Concurrent collection of raw provider payloads for one weapon.

Every fetcher runs concurrently and all of them are awaited to completion before
the merge; a failing provider is recorded and skipped rather than aborting.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .clock import Clock, utcnow
from .errors import NoSourcesError
from .reconciliation import SourcedRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .model import DataSource
    from .ports import PayloadFetcher

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceFailure:
    source: DataSource
    error: str


@dataclass(frozen=True, slots=True, kw_only=True)
class CollectionResult:
    records: tuple[SourcedRecord, ...]
    failures: tuple[SourceFailure, ...] = ()
    missing: tuple[DataSource, ...] = ()


async def collect_sourced_records(
    fetchers: Sequence[PayloadFetcher],
    *,
    name: str,
    game: str | None = None,
    min_successful_sources: int = 1,
    clock: Clock = utcnow,
) -> CollectionResult:
    """Fan out to every fetcher and gather whatever succeeded.

    Raises ``NoSourcesError`` when fewer than ``min_successful_sources`` providers
    returned a payload.
    """

    outcomes = await asyncio.gather(
        *(fetcher.fetch(name, game) for fetcher in fetchers),
        return_exceptions=True,
    )
    fetched_at = clock()
    records: list[SourcedRecord] = []
    failures: list[SourceFailure] = []
    missing: list[DataSource] = []
    for fetcher, outcome in zip(fetchers, outcomes, strict=True):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            log.warning("Fetching %s from %s failed: %s", name, fetcher.source, outcome)
            failures.append(SourceFailure(source=fetcher.source, error=str(outcome)))
            continue
        if outcome is None:
            log.info("%s has no data for %s", fetcher.source, name)
            missing.append(fetcher.source)
            continue
        records.append(
            SourcedRecord(source=fetcher.source, payload=outcome, timestamp=fetched_at)
        )

    if len(records) < min_successful_sources:
        raise NoSourcesError(
            f"no sources provided: {len(records)} of {len(fetchers)} providers returned "
            f"data for {name}, {min_successful_sources} required"
        )
    return CollectionResult(
        records=tuple(records), failures=tuple(failures), missing=tuple(missing)
    )
