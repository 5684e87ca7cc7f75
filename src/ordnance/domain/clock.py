"""Wall-clock access for the domain, injectable for tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

type Clock = Callable[[], datetime]

SECONDS_PER_DAY = 86_400.0


def utcnow() -> datetime:
    return datetime.now(UTC)


def age_in_days(timestamp: datetime, now: datetime) -> float:
    """Age of ``timestamp`` relative to ``now``; future timestamps count as age zero."""

    return max(0.0, (now - timestamp).total_seconds() / SECONDS_PER_DAY)
