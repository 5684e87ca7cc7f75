"""Conflict detection and value resolution across source observations."""

from __future__ import annotations

from .conflicts import detect_conflict, group_by_value, has_numeric_conflict
from .resolver import ConflictResolver, ResolutionResult, SourceWeigher, priority_confidence

__all__ = [
    "ConflictResolver",
    "ResolutionResult",
    "SourceWeigher",
    "detect_conflict",
    "group_by_value",
    "has_numeric_conflict",
    "priority_confidence",
]
