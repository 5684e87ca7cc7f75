"""HTTP fetchers for provider weapon payloads (httpx + aiolimiter)."""

from __future__ import annotations

import re
from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter
from pydantic import ValidationError

from ordnance.adapters.providers import parse_payload
from ordnance.domain.reconciliation import weapons_match

if TYPE_CHECKING:
    from types import TracebackType

    from ordnance.config.providers import ProviderEndpointConfig
    from ordnance.domain.model import DataSource

log = getLogger(__name__)


class ProviderFetchError(RuntimeError):
    """Raised when a provider responds with an unexpected status or payload."""


def weapon_slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")


def build_limiter(config: ProviderEndpointConfig) -> AsyncLimiter | None:
    if config.ratelimit is None:
        return None
    return AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)


class ProviderClient:
    """Async HTTP client for one provider.

    Requests go through ``limiter``; share one limiter between clients of the same
    provider so the rate limit holds across them.
    """

    def __init__(
        self,
        config: ProviderEndpointConfig,
        *,
        limiter: AsyncLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = limiter
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            headers=dict(config.default_headers),
            transport=transport,
        )

    async def __aenter__(self) -> ProviderClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> httpx.Response:
        if self._limiter is None:
            return await self._client.get(url, params=params)
        async with self._limiter:
            return await self._client.get(url, params=params)


def _unwrap_payload(body: object, name: str) -> Mapping[str, Any] | None:
    """Accept a bare object, a ``{"data": ...}`` envelope, or a list of candidates."""

    if isinstance(body, Mapping) and isinstance(body.get("data"), Mapping | list):
        body = body["data"]
    if isinstance(body, list):
        wanted = {"name": name}
        return next(
            (
                item
                for item in body
                if isinstance(item, Mapping)
                and weapons_match(wanted, {"name": item.get("name") or item.get("title")})
            ),
            None,
        )
    if isinstance(body, Mapping):
        return body
    raise ProviderFetchError(f"Unexpected payload type {type(body).__name__}")


class HttpPayloadFetcher:
    """``PayloadFetcher`` backed by a provider's JSON endpoint.

    A 404 means the provider does not know the weapon and yields ``None``; any other
    error status, undecodable body, or schema violation raises ``ProviderFetchError``.
    """

    def __init__(
        self,
        config: ProviderEndpointConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._limiter = build_limiter(config)

    @property
    def source(self) -> DataSource:
        return self._config.source

    @property
    def limiter(self) -> AsyncLimiter | None:
        return self._limiter

    async def fetch(self, name: str, game: str | None = None) -> Mapping[str, Any] | None:
        path = self._config.path_template.format(slug=weapon_slug(name), game=game or "")
        params = {"game": game} if game else None
        async with ProviderClient(
            self._config, limiter=self._limiter, transport=self._transport
        ) as client:
            try:
                response = await client.get(path, params=params)
            except httpx.HTTPError as exc:
                raise ProviderFetchError(f"{self.source}: request failed: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if response.is_error:
            raise ProviderFetchError(
                f"{self.source}: unexpected status {response.status_code} for {path}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderFetchError(f"{self.source}: response is not JSON") from exc

        payload = _unwrap_payload(body, name)
        if payload is None:
            return None
        try:
            parse_payload(self.source, payload)
        except ValidationError as exc:
            raise ProviderFetchError(f"{self.source}: payload failed validation: {exc}") from exc
        log.debug("Fetched %s payload for %s", self.source, name)
        return payload


def build_http_fetchers(
    configs: tuple[ProviderEndpointConfig, ...],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[HttpPayloadFetcher, ...]:
    return tuple(HttpPayloadFetcher(config, transport=transport) for config in configs)
