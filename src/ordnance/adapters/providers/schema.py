"""Pydantic models describing the raw provider weapon payloads."""

from __future__ import annotations

import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


def to_number(value: object) -> object:
    """Accept numbers and numeric strings such as ``"75"``, ``"12.5%"`` or ``"650 rpm"``."""

    if isinstance(value, str):
        match = _NUMBER_PATTERN.search(value.replace(",", ""))
        return float(match.group()) if match else None
    return value


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _none_to_empty_string(value: object) -> object:
    return "" if value is None else value


class ProviderBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DamageRangePayload(ProviderBaseModel):
    range: float
    damage: float
    headshot: float | None = None

    _numbers = field_validator("range", "damage", "headshot", mode="before")(to_number)


class TtkPayload(ProviderBaseModel):
    min: float | None = None
    max: float | None = None
    chest: float | None = None

    _numbers = field_validator("min", "max", "chest", mode="before")(to_number)


class RecoilPayload(ProviderBaseModel):
    horizontal: float = 0.0
    vertical: float = 0.0

    _numbers = field_validator("horizontal", "vertical", mode="before")(to_number)


class CodArmoryStatsPayload(ProviderBaseModel):
    damage: float | None = None
    range: float | None = None
    accuracy: float | None = None
    fire_rate: float | None = Field(default=None, validation_alias=AliasChoices("fireRate", "rof"))
    mobility: float | None = None
    control: float | None = Field(
        default=None, validation_alias=AliasChoices("control", "recoilControl")
    )
    handling: float | None = Field(default=None, validation_alias=AliasChoices("handling", "ads"))

    _numbers = field_validator(
        "damage",
        "range",
        "accuracy",
        "fire_rate",
        "mobility",
        "control",
        "handling",
        mode="before",
    )(to_number)


class CodArmoryDamageProfilePayload(ProviderBaseModel):
    ranges: list[DamageRangePayload] = Field(default_factory=list)
    ttk: TtkPayload | None = None
    bullet_velocity: float | None = Field(default=None, alias="bulletVelocity")
    recoil_pattern: RecoilPayload | None = Field(default=None, alias="recoilPattern")

    _numbers = field_validator("bullet_velocity", mode="before")(to_number)


class CodArmoryPayload(ProviderBaseModel):
    """Weapon page from the loadout database; ballistics live under ``damageProfile``."""

    name: str = Field(default="", validation_alias=AliasChoices("name", "title"))
    game: str | None = Field(default=None, validation_alias=AliasChoices("game", "platform"))
    category: str | None = Field(
        default=None, validation_alias=AliasChoices("category", "type", "weaponClass")
    )
    stats: CodArmoryStatsPayload = Field(default_factory=CodArmoryStatsPayload)
    damage_profile: CodArmoryDamageProfilePayload | None = Field(
        default=None, alias="damageProfile"
    )
    fire_rate: float | None = Field(default=None, validation_alias=AliasChoices("rpm", "fireRate"))
    magazine_size: float | None = Field(
        default=None, validation_alias=AliasChoices("magazineSize", "magSize")
    )
    reload_time: float | None = Field(default=None, alias="reloadTime")
    ad_time: float | None = Field(default=None, validation_alias=AliasChoices("adsTime", "adTime"))
    attachments: dict[str, Any] = Field(default_factory=dict)
    image_url: str | None = Field(default=None, validation_alias=AliasChoices("imageUrl", "image"))
    icon_url: str | None = Field(default=None, alias="iconUrl")

    _numbers = field_validator(
        "fire_rate", "magazine_size", "reload_time", "ad_time", mode="before"
    )(to_number)
    _blanks = field_validator("game", "category", "image_url", "icon_url", mode="before")(
        _blank_to_none
    )
    _names = field_validator("name", mode="before")(_none_to_empty_string)

    @field_validator("stats", "attachments", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return {} if value is None else value


class WzStatsPayload(ProviderBaseModel):
    """Meta ranking entry: tier, usage share, and win rate."""

    name: str = ""
    game: str | None = None
    tier: str | None = None
    usage: float | None = None
    pick_rate: float | None = Field(default=None, alias="pickRate")
    win_rate: float | None = Field(default=None, validation_alias=AliasChoices("winRate", "wr"))
    kd: float | None = Field(default=None, validation_alias=AliasChoices("kd", "kdRatio"))

    _numbers = field_validator("usage", "pick_rate", "win_rate", "kd", mode="before")(to_number)
    _blanks = field_validator("game", mode="before")(_blank_to_none)
    _names = field_validator("name", mode="before")(_none_to_empty_string)

    @field_validator("tier", mode="before")
    @classmethod
    def _normalize_tier(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip().upper()
            return stripped.removesuffix("-TIER").removesuffix(" TIER") or None
        return value


class CodMunityPayload(ProviderBaseModel):
    """Ballistics sheet; every ballistic value sits at the top level."""

    name: str = ""
    game: str | None = None
    ttk: TtkPayload | None = None
    bullet_velocity: float | None = Field(default=None, alias="bulletVelocity")
    damage_ranges: list[DamageRangePayload] = Field(default_factory=list, alias="damageRanges")
    fire_rate: float | None = Field(default=None, alias="fireRate")
    magazine_size: float | None = Field(default=None, alias="magazineSize")
    reload_time: float | None = Field(default=None, alias="reloadTime")
    ad_time: float | None = Field(default=None, validation_alias=AliasChoices("adTime", "adsTime"))
    recoil: RecoilPayload | None = Field(
        default=None, validation_alias=AliasChoices("recoilPattern", "recoil")
    )

    _numbers = field_validator(
        "bullet_velocity",
        "fire_rate",
        "magazine_size",
        "reload_time",
        "ad_time",
        mode="before",
    )(to_number)
    _blanks = field_validator("game", mode="before")(_blank_to_none)
    _names = field_validator("name", mode="before")(_none_to_empty_string)

    @field_validator("damage_ranges", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: object) -> object:
        return [] if value is None else value


class CanonicalPayload(ProviderBaseModel):
    """Payloads already in the unified flat shape (manual entry, official API, wiki...)."""

    name: str = ""
    game: str | None = None
    category: str | None = None
    stats: dict[str, Any] = Field(default_factory=dict)
    ballistics: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)
    attachment_slots: dict[str, Any] = Field(default_factory=dict, alias="attachmentSlots")
    best_for: list[Any] = Field(default_factory=list, alias="bestFor")
    playstyles: list[Any] = Field(default_factory=list)
    image_url: str | None = Field(default=None, alias="imageUrl")
    icon_url: str | None = Field(default=None, alias="iconUrl")

    _blanks = field_validator("game", "category", "image_url", "icon_url", mode="before")(
        _blank_to_none
    )
    _names = field_validator("name", mode="before")(_none_to_empty_string)

    @field_validator("stats", "ballistics", "meta", "attachment_slots", mode="before")
    @classmethod
    def _none_to_empty_mapping(cls, value: object) -> object:
        return {} if value is None else value

    @field_validator("best_for", "playstyles", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: object) -> object:
        return [] if value is None else value


type ProviderPayload = CodArmoryPayload | WzStatsPayload | CodMunityPayload | CanonicalPayload
