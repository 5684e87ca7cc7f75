"""Ports for fetching raw provider payloads."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ordnance.domain.model import DataSource


class PayloadFetcher(Protocol):
    """Fetch one provider's raw payload for a weapon; ``None`` when the provider has none."""

    @property
    def source(self) -> DataSource: ...

    async def fetch(self, name: str, game: str | None = None) -> Mapping[str, Any] | None: ...
