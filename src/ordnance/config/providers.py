"""Provider endpoint configuration for the HTTP fetch layer."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ordnance.domain.model import DataSource

from .env import env_float, require_env_vars

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_TIMEOUT_SECONDS = 15.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ProviderEndpointConfig:
    """Where and how politely to fetch one provider's weapon payloads.

    ``path_template`` is formatted with ``slug`` (the lower-cased, dash-joined
    weapon name) and ``game``.
    """

    source: DataSource
    base_url: str
    path_template: str = "/weapons/{slug}"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] = field(default_factory=dict)


# Politeness defaults for the scraped providers; overridable per deployment.
DEFAULT_RATE_LIMITS: dict[DataSource, RateLimit] = {
    DataSource.CODARMORY: RateLimit(max_calls=2, per_seconds=1.0),
    DataSource.WZSTATS: RateLimit(max_calls=1, per_seconds=1.0),
    DataSource.CODMUNITY: RateLimit(max_calls=1, per_seconds=2.0),
}


def _env_name(source: DataSource) -> str:
    return f"ORDNANCE_{source.value.upper()}_URL"


def get_provider_configs(
    sources: tuple[DataSource, ...] = tuple(DEFAULT_RATE_LIMITS),
) -> tuple[ProviderEndpointConfig, ...]:
    """Return endpoint configs for every provider whose base URL is configured."""

    timeout = env_float("ORDNANCE_FETCH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    configs: list[ProviderEndpointConfig] = []
    for source in sources:
        base_url = os.getenv(_env_name(source))
        if base_url is None or not base_url.strip():
            continue
        configs.append(
            ProviderEndpointConfig(
                source=source,
                base_url=base_url.strip(),
                timeout_seconds=timeout,
                ratelimit=DEFAULT_RATE_LIMITS.get(source),
            )
        )
    return tuple(configs)


def require_provider_config(source: DataSource) -> ProviderEndpointConfig:
    """Return the endpoint config for ``source`` or raise if its URL is not configured."""

    name = _env_name(source)
    values = require_env_vars((name,))
    return ProviderEndpointConfig(
        source=source,
        base_url=values[name].strip(),
        timeout_seconds=env_float("ORDNANCE_FETCH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        ratelimit=DEFAULT_RATE_LIMITS.get(source),
    )
