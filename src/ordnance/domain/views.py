"""Flattened read view of a unified weapon for API consumers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .clock import age_in_days
from .model import FIELD_GROUPS, Staleness
from .model.documents import to_epoch_ms

if TYPE_CHECKING:
    from datetime import datetime

    from .model import UnifiedWeapon

FRESH_DAYS = 1.0
RECENT_DAYS = 7.0


def staleness(last_updated: datetime, now: datetime) -> Staleness:
    age = age_in_days(last_updated, now)
    if age < FRESH_DAYS:
        return Staleness.FRESH
    if age < RECENT_DAYS:
        return Staleness.RECENT
    return Staleness.STALE


def to_weapon_response(weapon: UnifiedWeapon, *, now: datetime) -> dict[str, Any]:
    """Plain current values plus a compact data-quality summary."""

    response: dict[str, Any] = {
        "id": weapon.id,
        "name": weapon.name,
        "game": weapon.game,
        "category": weapon.category,
    }
    for group_name in FIELD_GROUPS:
        response[group_name] = {
            name: value.current_value for name, value in weapon.group(group_name).items()
        }
    response["attachmentSlots"] = {
        slot: list(entries) for slot, entries in weapon.attachment_slots.items()
    }
    response["bestFor"] = list(weapon.best_for)
    response["playstyles"] = list(weapon.playstyles)
    response["imageUrl"] = weapon.image_url
    response["iconUrl"] = weapon.icon_url
    response["dataQuality"] = {
        "confidence": weapon.lineage.average_confidence,
        "sources": [source.value for source in weapon.lineage.contributing_sources],
        "hasConflicts": weapon.lineage.conflict_count > 0,
        "staleness": staleness(weapon.lineage.last_updated, now).value,
        "lastUpdated": to_epoch_ms(weapon.lineage.last_updated),
    }
    return response
