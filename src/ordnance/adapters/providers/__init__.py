"""Provider payload schemas and their translation into the canonical shape."""

from __future__ import annotations

from .schema import (
    CanonicalPayload,
    CodArmoryPayload,
    CodMunityPayload,
    ProviderPayload,
    WzStatsPayload,
)
from .translator import normalize_payload, parse_payload

__all__ = [
    "CanonicalPayload",
    "CodArmoryPayload",
    "CodMunityPayload",
    "ProviderPayload",
    "WzStatsPayload",
    "normalize_payload",
    "parse_payload",
]
