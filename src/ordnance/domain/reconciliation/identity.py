"""Deterministic weapon identity."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final
from uuid import NAMESPACE_URL, uuid5

from ordnance.domain.model import normalize_game_name, normalize_identity

if TYPE_CHECKING:
    from collections.abc import Mapping

WEAPON_NAMESPACE: Final = uuid5(NAMESPACE_URL, "urn:ordnance:weapon")

_NAME_KEYS: Final[tuple[str, ...]] = ("name", "title", "weaponName")
_GAME_KEYS: Final[tuple[str, ...]] = ("game", "platform")


def _first_string(payload: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def identity_key(name: str | None, game: str | None) -> tuple[str, str]:
    """Case- and whitespace-insensitive ``(name, game)`` pair, with game aliases folded."""

    canonical_game = normalize_game_name(game)
    return (
        normalize_identity(name),
        normalize_identity(canonical_game.value if canonical_game else game),
    )


def entity_id(name: str | None, game: str | None) -> str:
    normalized_name, normalized_game = identity_key(name, game)
    return str(uuid5(WEAPON_NAMESPACE, f"{normalized_name}|{normalized_game}"))


def extract_entity_id(payload: Mapping[str, Any]) -> str:
    """Content-derived id for ``payload``; the same weapon always maps to the same id.

    A payload without a game hashes with an empty game.
    """

    return entity_id(_first_string(payload, _NAME_KEYS), _first_string(payload, _GAME_KEYS))


def weapons_match(first: Mapping[str, Any], second: Mapping[str, Any]) -> bool:
    """Whether two payloads describe the same weapon by normalized name and game."""

    return identity_key(_first_string(first, _NAME_KEYS), _first_string(first, _GAME_KEYS)) == (
        identity_key(_first_string(second, _NAME_KEYS), _first_string(second, _GAME_KEYS))
    )
