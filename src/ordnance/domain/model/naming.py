"""Normalization of free-form game and weapon category labels."""

from __future__ import annotations

import re

from .enums import Game, WeaponCategory

_GAME_ALIASES: dict[str, Game] = {
    "mw3": Game.MW3,
    "mwiii": Game.MW3,
    "modernwarfare3": Game.MW3,
    "modernwarfareiii": Game.MW3,
    "mw2": Game.MW2,
    "mwii": Game.MW2,
    "modernwarfare2": Game.MW2,
    "modernwarfareii": Game.MW2,
    "bo6": Game.BO6,
    "blackops6": Game.BO6,
    "warzone": Game.WARZONE,
    "wz": Game.WARZONE,
    "warzone2": Game.WARZONE,
    "callofdutywarzone": Game.WARZONE,
}

_CATEGORY_ALIASES: dict[str, WeaponCategory] = {
    "ar": WeaponCategory.AR,
    "assault": WeaponCategory.AR,
    "assaultrifle": WeaponCategory.AR,
    "smg": WeaponCategory.SMG,
    "submachinegun": WeaponCategory.SMG,
    "lmg": WeaponCategory.LMG,
    "lightmachinegun": WeaponCategory.LMG,
    "sniper": WeaponCategory.SNIPER,
    "sniperrifle": WeaponCategory.SNIPER,
    "marksman": WeaponCategory.MARKSMAN,
    "marksmanrifle": WeaponCategory.MARKSMAN,
    "dmr": WeaponCategory.MARKSMAN,
    "battlerifle": WeaponCategory.MARKSMAN,
    "shotgun": WeaponCategory.SHOTGUN,
    "pistol": WeaponCategory.PISTOL,
    "handgun": WeaponCategory.PISTOL,
}


def _compact(label: str) -> str:
    return re.sub(r"[^a-z0-9]", "", label.strip().lower())


def normalize_game_name(label: str | None) -> Game | None:
    """Return the canonical ``Game`` for a label, or ``None`` when unrecognised."""

    if not label:
        return None
    return _GAME_ALIASES.get(_compact(label))


def normalize_category(label: str | None) -> WeaponCategory | None:
    """Return the canonical ``WeaponCategory`` for a label, or ``None`` when unrecognised."""

    if not label:
        return None
    compact = _compact(label)
    if compact.endswith("s") and compact[:-1] in _CATEGORY_ALIASES:
        compact = compact[:-1]
    return _CATEGORY_ALIASES.get(compact)


def normalize_identity(value: str | None) -> str:
    """Lower-cased, trimmed, whitespace-collapsed identity component."""

    if not value:
        return ""
    return " ".join(value.split()).lower()
