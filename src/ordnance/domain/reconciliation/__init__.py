"""Per-entity reconciliation of provider payloads into unified weapons."""

from __future__ import annotations

from .attachments import merge_attachments, merge_string_lists
from .contracts import (
    MergeResult,
    MergeStats,
    NormalizedWeapon,
    NormalizePayload,
    SourcedRecord,
)
from .identity import entity_id, extract_entity_id, identity_key, weapons_match
from .merger import SchemaMerger
from .validation import (
    ValidationResult,
    unwrap,
    validate_unified_weapon,
    validate_weapon_document,
)

__all__ = [
    "MergeResult",
    "MergeStats",
    "NormalizePayload",
    "NormalizedWeapon",
    "SchemaMerger",
    "SourcedRecord",
    "ValidationResult",
    "entity_id",
    "extract_entity_id",
    "identity_key",
    "merge_attachments",
    "merge_string_lists",
    "unwrap",
    "validate_unified_weapon",
    "validate_weapon_document",
    "weapons_match",
]
