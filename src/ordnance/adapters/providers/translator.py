"""Translate raw provider payloads into the canonical per-provider weapon shape."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from logging import getLogger
from typing import TYPE_CHECKING, Any

from ordnance.domain.model import (
    BALLISTICS_SCALAR_FIELDS,
    META_NUMERIC_FIELDS,
    STAT_FIELDS,
    DataSource,
)
from ordnance.domain.reconciliation import NormalizedWeapon

from .schema import (
    CanonicalPayload,
    CodArmoryPayload,
    CodMunityPayload,
    WzStatsPayload,
    to_number,
)

if TYPE_CHECKING:
    from pydantic import BaseModel

    from ordnance.domain.model import FieldValue

    from .schema import ProviderPayload

log = getLogger(__name__)

_SLOT_ALIASES: dict[str, str] = {
    "grip": "rearGrip",
    "reargrip": "rearGrip",
    "rear_grip": "rearGrip",
    "ammo": "ammunition",
    "underbarrel": "underbarrel",
    "under_barrel": "underbarrel",
    "mag": "magazine",
    "optics": "optic",
}


def parse_payload(source: DataSource, payload: Mapping[str, Any]) -> ProviderPayload:
    """Validate ``payload`` against the schema of ``source`` (raises pydantic errors)."""

    match source:
        case DataSource.CODARMORY:
            return CodArmoryPayload.model_validate(payload)
        case DataSource.WZSTATS:
            return WzStatsPayload.model_validate(payload)
        case DataSource.CODMUNITY:
            return CodMunityPayload.model_validate(payload)
        case _:
            return CanonicalPayload.model_validate(payload)


def normalize_payload(source: DataSource, payload: Mapping[str, Any]) -> NormalizedWeapon:
    parsed = parse_payload(source, payload)
    match parsed:
        case CodArmoryPayload():
            return _from_codarmory(parsed)
        case WzStatsPayload():
            return _from_wzstats(parsed)
        case CodMunityPayload():
            return _from_codmunity(parsed)
        case CanonicalPayload():
            return _from_canonical(parsed)


def _dump(model: BaseModel | None) -> dict[str, Any] | None:
    if model is None:
        return None
    return model.model_dump(exclude_none=True)


def _present(values: Mapping[str, FieldValue]) -> dict[str, FieldValue]:
    return {key: value for key, value in values.items() if value is not None}


def _slots(raw: Mapping[str, Any]) -> dict[str, tuple[object, ...]]:
    slots: dict[str, tuple[object, ...]] = {}
    for slot, entries in raw.items():
        key = str(slot).strip().lower()
        name = _SLOT_ALIASES.get(key, key)
        if isinstance(entries, str):
            values: tuple[object, ...] = (entries,)
        elif isinstance(entries, Sequence):
            values = tuple(entries)
        else:
            log.debug("Ignoring attachment slot %s with %r", slot, entries)
            continue
        slots[name] = slots.get(name, ()) + values
    return slots


def _from_codarmory(payload: CodArmoryPayload) -> NormalizedWeapon:
    profile = payload.damage_profile
    stats = payload.stats
    return NormalizedWeapon(
        name=payload.name,
        game=payload.game or "",
        category=payload.category or "",
        stats=_present(
            {
                "damage": stats.damage,
                "range": stats.range,
                "accuracy": stats.accuracy,
                "fireRate": stats.fire_rate,
                "mobility": stats.mobility,
                "control": stats.control,
                "handling": stats.handling,
            }
        ),
        ballistics=_present(
            {
                "damageRanges": (
                    [_dump(item) for item in profile.ranges] if profile and profile.ranges else None
                ),
                "ttk": _dump(profile.ttk) if profile else None,
                "recoilPattern": _dump(profile.recoil_pattern) if profile else None,
                "bulletVelocity": profile.bullet_velocity if profile else None,
                "fireRate": payload.fire_rate,
                "magazineSize": payload.magazine_size,
                "reloadTime": payload.reload_time,
                "adTime": payload.ad_time,
            }
        ),
        attachment_slots=_slots(payload.attachments),
        image_url=payload.image_url,
        icon_url=payload.icon_url,
    )


def _from_wzstats(payload: WzStatsPayload) -> NormalizedWeapon:
    return NormalizedWeapon(
        name=payload.name,
        game=payload.game or "",
        meta=_present(
            {
                "tier": payload.tier,
                "popularity": payload.usage,
                "pickRate": payload.pick_rate if payload.pick_rate is not None else payload.usage,
                "winRate": payload.win_rate,
                "kd": payload.kd,
            }
        ),
    )


def _from_codmunity(payload: CodMunityPayload) -> NormalizedWeapon:
    return NormalizedWeapon(
        name=payload.name,
        game=payload.game or "",
        ballistics=_present(
            {
                "damageRanges": (
                    [_dump(item) for item in payload.damage_ranges]
                    if payload.damage_ranges
                    else None
                ),
                "ttk": _dump(payload.ttk),
                "recoilPattern": _dump(payload.recoil),
                "bulletVelocity": payload.bullet_velocity,
                "fireRate": payload.fire_rate,
                "magazineSize": payload.magazine_size,
                "reloadTime": payload.reload_time,
                "adTime": payload.ad_time,
            }
        ),
    )


def _coerce_numbers(values: Mapping[str, Any], names: tuple[str, ...]) -> dict[str, FieldValue]:
    coerced: dict[str, FieldValue] = {}
    for key, value in values.items():
        coerced[key] = to_number(value) if key in names else value  # type: ignore[assignment]
    return _present(coerced)


def _from_canonical(payload: CanonicalPayload) -> NormalizedWeapon:
    meta = _coerce_numbers(payload.meta, META_NUMERIC_FIELDS)
    tier = meta.get("tier")
    if isinstance(tier, str):
        meta["tier"] = tier.strip().upper() or None
    return NormalizedWeapon(
        name=payload.name,
        game=payload.game or "",
        category=payload.category or "",
        stats=_coerce_numbers(payload.stats, STAT_FIELDS),
        ballistics=_coerce_numbers(payload.ballistics, BALLISTICS_SCALAR_FIELDS),
        meta=_present(meta),
        attachment_slots=_slots(payload.attachment_slots),
        best_for=tuple(payload.best_for),
        playstyles=tuple(payload.playstyles),
        image_url=payload.image_url,
        icon_url=payload.icon_url,
    )
