"""Unified weapon entity assembled from every provider's observations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from datetime import datetime

    from .lineage import LineageMetadata, MultiSourceField

STAT_FIELDS: Final[tuple[str, ...]] = (
    "damage",
    "range",
    "accuracy",
    "fireRate",
    "mobility",
    "control",
    "handling",
)
BALLISTICS_STRUCTURED_FIELDS: Final[tuple[str, ...]] = ("damageRanges", "ttk", "recoilPattern")
BALLISTICS_SCALAR_FIELDS: Final[tuple[str, ...]] = (
    "fireRate",
    "magazineSize",
    "reloadTime",
    "adTime",
    "bulletVelocity",
)
BALLISTICS_FIELDS: Final[tuple[str, ...]] = BALLISTICS_STRUCTURED_FIELDS + BALLISTICS_SCALAR_FIELDS
META_CATEGORICAL_FIELDS: Final[tuple[str, ...]] = ("tier",)
META_NUMERIC_FIELDS: Final[tuple[str, ...]] = ("popularity", "pickRate", "winRate", "kd")
META_FIELDS: Final[tuple[str, ...]] = META_CATEGORICAL_FIELDS + META_NUMERIC_FIELDS

# Group name -> tracked field names, in document order.
FIELD_GROUPS: Final[dict[str, tuple[str, ...]]] = {
    "stats": STAT_FIELDS,
    "ballistics": BALLISTICS_FIELDS,
    "meta": META_FIELDS,
}


@dataclass(frozen=True, slots=True, kw_only=True)
class UnifiedWeapon:
    """One weapon with every tracked attribute wrapped in a ``MultiSourceField``.

    Instances are rebuilt wholesale by each merge; there is no per-field mutation.
    """

    id: str
    name: str
    game: str
    category: str
    stats: Mapping[str, MultiSourceField]
    ballistics: Mapping[str, MultiSourceField]
    meta: Mapping[str, MultiSourceField]
    lineage: LineageMetadata
    created_at: datetime
    updated_at: datetime
    attachment_slots: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    best_for: tuple[str, ...] = ()
    playstyles: tuple[str, ...] = ()
    image_url: str | None = None
    icon_url: str | None = None

    def group(self, name: str) -> Mapping[str, MultiSourceField]:
        match name:
            case "stats":
                return self.stats
            case "ballistics":
                return self.ballistics
            case "meta":
                return self.meta
            case _:
                raise KeyError(name)

    def iter_fields(self) -> Iterator[tuple[str, MultiSourceField]]:
        """Yield ``("group.field", field)`` pairs in document order."""

        for group_name in FIELD_GROUPS:
            for field_name, value in self.group(group_name).items():
                yield f"{group_name}.{field_name}", value

    def get_field(self, path: str) -> MultiSourceField:
        group_name, _, field_name = path.partition(".")
        return self.group(group_name)[field_name]
