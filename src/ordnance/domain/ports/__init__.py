"""Domain ports implemented by adapters."""

from __future__ import annotations

from .fetching import PayloadFetcher
from .persistence import MigrationLog, WeaponRepository
from .unit_of_work import (
    RepositoryCollection,
    UnitOfWork,
    WeaponRepositories,
    WeaponUnitOfWork,
)

__all__ = [
    "MigrationLog",
    "PayloadFetcher",
    "RepositoryCollection",
    "UnitOfWork",
    "WeaponRepositories",
    "WeaponRepository",
    "WeaponUnitOfWork",
]
