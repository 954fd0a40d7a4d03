"""Discovery document fetcher.

Downloads ``https://{service}/$discovery/{format}`` for every configured
service concurrently.  A failure for one service is reported in its
``FetchResult`` and never aborts the others.  No retry or back-off is
applied; the next poll cycle is the retry.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx
import structlog

from discotrack.models.config import FetchConfig

_log = structlog.get_logger(component="collector.fetcher")

_DISCOVERY_MARKER = '"discoveryVersion"'


@dataclass(frozen=True)
class FetchResult:
    """Outcome of fetching one service's document."""

    service: str
    content: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.content is not None


class DocumentFetcher:
    """Fetches raw discovery documents over HTTPS.

    Args:
        config:    Fetch configuration (services, format, label, timeout).
        transport: Optional httpx transport, used by tests to stub the network.
    """

    def __init__(self, config: FetchConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config
        self._transport = transport

    @property
    def services(self) -> list[str]:
        return list(self._config.services)

    def build_url(self, service: str) -> str:
        return f"https://{service}/$discovery/{self._config.format_for(service)}"

    def build_params(self, service: str) -> dict[str, str]:
        label = self._config.label_for(service)
        return {"label": label} if label else {}

    async def fetch_all(self) -> list[FetchResult]:
        """Fetch every configured service; results keep the configured order."""
        async with httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            transport=self._transport,
        ) as client:
            tasks = [self._fetch_one(client, service) for service in self._config.services]
            return list(await asyncio.gather(*tasks))

    async def _fetch_one(self, client: httpx.AsyncClient, service: str) -> FetchResult:
        url = self.build_url(service)
        try:
            response = await client.get(url, params=self.build_params(service))
        except httpx.TimeoutException:
            _log.warning("service_fetch_timeout", service=service, url=url)
            return FetchResult(service=service, error="request timed out")
        except httpx.HTTPError as exc:
            _log.warning("service_fetch_failed", service=service, url=url, error=str(exc))
            return FetchResult(service=service, error=str(exc))

        if not response.is_success:
            _log.warning(
                "service_fetch_non_2xx",
                service=service,
                status_code=response.status_code,
                body=response.text[:200],
            )
            return FetchResult(service=service, error=f"HTTP {response.status_code}")

        content = response.text
        # Body must at least mention discoveryVersion to reach the parser.
        if _DISCOVERY_MARKER not in content:
            _log.warning("service_fetch_not_discovery", service=service, url=url)
            return FetchResult(service=service, error="response is not a discovery document")

        return FetchResult(service=service, content=content)
