"""Generic JSON webhook notification channel for discotrack.

Posts a summary of each LoggedChange as a JSON body to a configured HTTP
endpoint, with a link back to the change in the tracker's read API.
"""

from __future__ import annotations

import httpx
import structlog

from discotrack.models.changes import LoggedChange
from discotrack.notifications.manager import NotificationChannel

_log = structlog.get_logger(component="notifications.webhook")


class WebhookNotificationChannel(NotificationChannel):
    """Delivers change summaries by POSTing a JSON payload to a URL.

    Args:
        url:          Full endpoint URL.
        tracker_url:  Public base URL of this tracker; used to build links.
        services:     Optional allow-list; other services are not sent.
        display_name: Optional human-readable API name added to the payload.
        name:         Channel name used in logs and metrics.
        timeout:      HTTP request timeout in seconds. Defaults to 10.
        transport:    Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        url: str,
        tracker_url: str = "",
        services: list[str] | None = None,
        display_name: str = "",
        name: str = "webhook",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._tracker_url = tracker_url.rstrip("/")
        self._services = set(services) if services else None
        self._display_name = display_name
        self._name = name
        self._timeout = timeout
        self._transport = transport

    @property
    def channel_name(self) -> str:
        return self._name

    async def send(self, change: LoggedChange) -> bool:
        """POST *change* as JSON to the configured endpoint.

        Returns True on 2xx response or when the service is filtered out,
        False otherwise.
        """
        if self._services is not None and change.service not in self._services:
            return True

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=self.build_payload(change))
                if response.is_success:
                    return True
                _log.warning(
                    "webhook_non_2xx_response",
                    channel=self._name,
                    status_code=response.status_code,
                    body=response.text[:200],
                    service=change.service,
                )
                return False
        except httpx.TimeoutException:
            _log.warning("webhook_request_timeout", channel=self._name, service=change.service)
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_http_error", channel=self._name, error=str(exc), service=change.service)
            return False

    def change_link(self, change: LoggedChange) -> str:
        return f"{self._tracker_url}/api/changes/{change.service}/{change.timestamp}/diff"

    def build_payload(self, change: LoggedChange) -> dict[str, object]:
        """Serialise *change* to a plain dict for JSON encoding."""
        payload: dict[str, object] = {
            "service": change.service,
            "revision": change.revision,
            "timestamp": change.timestamp,
            "summary": change.summary.to_dict(),
            "link": self.change_link(change),
        }
        if self._display_name:
            payload["name"] = self._display_name
        return payload
