"""Unit tests for the notification dispatcher, filter and webhook channel."""

from __future__ import annotations

import dataclasses
import json

import httpx
import pytest

from discotrack.models.changes import Change, ChangeSummary, LoggedChange
from discotrack.models.config import NotificationConfig, ServiceWebhook
from discotrack.notifications import build_notification_dispatcher
from discotrack.notifications.manager import (
    NotificationChannel,
    NotificationDispatcher,
    RevisionOnlyFilter,
)
from discotrack.notifications.webhook import WebhookNotificationChannel

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _logged(
    modifications: tuple[Change, ...] = (Change.modified("title", "a", "b"),),
    additions: tuple[Change, ...] = (),
) -> LoggedChange:
    return LoggedChange(
        revision="20240102",
        timestamp=1_700_000_000,
        service="things.example.com",
        summary=ChangeSummary(
            additions=len(additions),
            modifications=len(modifications),
            deletions=0,
            tags=frozenset({"new_method"}) if additions else frozenset(),
        ),
        modifications=modifications,
        additions=additions,
    )


class _RecordingChannel(NotificationChannel):
    def __init__(self, name: str = "recording", result: bool = True) -> None:
        self._name = name
        self._result = result
        self.sent: list[LoggedChange] = []

    @property
    def channel_name(self) -> str:
        return self._name

    async def send(self, change: LoggedChange) -> bool:
        self.sent.append(change)
        return self._result


class _ExplodingChannel(NotificationChannel):
    @property
    def channel_name(self) -> str:
        return "exploding"

    async def send(self, change: LoggedChange) -> bool:
        raise RuntimeError("boom")


# ---------------------------------------------------------------------------
# RevisionOnlyFilter
# ---------------------------------------------------------------------------


class TestRevisionOnlyFilter:
    def test_revision_only_change_is_suppressed(self) -> None:
        change = _logged(modifications=(Change.modified("revision", "1", "2"),))
        assert RevisionOnlyFilter().should_send(change) is False

    def test_revision_plus_other_change_is_sent(self) -> None:
        change = _logged(modifications=(Change.modified("revision", "1", "2"), Change.modified("title", "a", "b")))
        assert RevisionOnlyFilter().should_send(change) is True

    def test_nested_revision_path_is_not_special(self) -> None:
        change = _logged(modifications=(Change.modified("/schemas/X/properties/revision/type", "a", "b"),))
        assert RevisionOnlyFilter().should_send(change) is True

    def test_disabled_filter_sends_everything(self) -> None:
        change = _logged(modifications=(Change.modified("revision", "1", "2"),))
        assert RevisionOnlyFilter(enabled=False).should_send(change) is True


# ---------------------------------------------------------------------------
# NotificationDispatcher
# ---------------------------------------------------------------------------


class TestDispatcher:
    async def test_fan_out_reaches_every_channel(self) -> None:
        first, second = _RecordingChannel("first"), _RecordingChannel("second")
        dispatcher = NotificationDispatcher([first, second])
        change = _logged()

        await dispatcher.fan_out(change)

        assert first.sent == [change]
        assert second.sent == [change]

    async def test_failing_channel_does_not_block_others(self) -> None:
        healthy = _RecordingChannel()
        dispatcher = NotificationDispatcher([_ExplodingChannel(), _RecordingChannel(result=False), healthy])

        await dispatcher.fan_out(_logged())

        assert len(healthy.sent) == 1

    async def test_dispatch_schedules_and_stop_drains(self) -> None:
        channel = _RecordingChannel()
        dispatcher = NotificationDispatcher([channel])

        dispatcher.dispatch(_logged())
        await dispatcher.stop()

        assert len(channel.sent) == 1

    async def test_dispatch_applies_filter(self) -> None:
        channel = _RecordingChannel()
        dispatcher = NotificationDispatcher([channel], change_filter=RevisionOnlyFilter())

        dispatcher.dispatch(_logged(modifications=(Change.modified("revision", "1", "2"),)))
        await dispatcher.stop()

        assert channel.sent == []

    async def test_dispatch_without_channels_is_a_no_op(self) -> None:
        dispatcher = NotificationDispatcher([])
        dispatcher.dispatch(_logged())
        await dispatcher.stop()


# ---------------------------------------------------------------------------
# WebhookNotificationChannel
# ---------------------------------------------------------------------------


class TestWebhookChannel:
    def test_empty_url_rejected(self) -> None:
        with pytest.raises(ValueError):
            WebhookNotificationChannel(url="")

    def test_payload(self) -> None:
        channel = WebhookNotificationChannel(url="https://hooks.example.com/x", tracker_url="https://tracker.example.com/")
        change = _logged(additions=(Change.added("/resources/r/methods/m", {"id": "m"}),))

        assert channel.build_payload(change) == {
            "service": "things.example.com",
            "revision": "20240102",
            "timestamp": 1_700_000_000,
            "summary": {"additions": 1, "modifications": 1, "deletions": 0, "tags": ["new_method"]},
            "link": "https://tracker.example.com/api/changes/things.example.com/1700000000/diff",
        }

    async def test_send_posts_json(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        channel = WebhookNotificationChannel(url="https://hooks.example.com/x", transport=httpx.MockTransport(handler))
        assert await channel.send(_logged()) is True

        (request,) = requests
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content)["service"] == "things.example.com"

    async def test_non_2xx_returns_false(self) -> None:
        channel = WebhookNotificationChannel(
            url="https://hooks.example.com/x",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="nope")),
        )
        assert await channel.send(_logged()) is False

    async def test_transport_error_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        channel = WebhookNotificationChannel(url="https://hooks.example.com/x", transport=httpx.MockTransport(handler))
        assert await channel.send(_logged()) is False


    def test_display_name_and_channel_name(self) -> None:
        channel = WebhookNotificationChannel(
            url="https://hooks.example.com/x",
            display_name="Things API (Staging)",
            name="webhook:things.example.com",
        )

        assert channel.channel_name == "webhook:things.example.com"
        assert channel.build_payload(_logged())["name"] == "Things API (Staging)"
        assert "name" not in WebhookNotificationChannel(url="https://hooks.example.com/x").build_payload(_logged())
    async def test_service_allow_list(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("filtered service must not be posted")

        channel = WebhookNotificationChannel(
            url="https://hooks.example.com/x",
            services=["other.example.com"],
            transport=httpx.MockTransport(handler),
        )
        assert await channel.send(_logged()) is True


# ---------------------------------------------------------------------------
# build_notification_dispatcher
# ---------------------------------------------------------------------------


class TestBuildDispatcher:
    def test_no_secret_ref_means_no_channels(self) -> None:
        dispatcher = build_notification_dispatcher(NotificationConfig())
        assert dispatcher.channels == []

    def test_secret_ref_resolves_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOOK_URL", "https://hooks.example.com/x")
        dispatcher = build_notification_dispatcher(NotificationConfig(webhook_secret_ref="HOOK_URL"))
        (channel,) = dispatcher.channels
        assert isinstance(channel, WebhookNotificationChannel)

    def test_empty_secret_value_disables_channel(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("HOOK_URL", raising=False)
        dispatcher = build_notification_dispatcher(NotificationConfig(webhook_secret_ref="HOOK_URL"))
        assert dispatcher.channels == []

    def test_service_webhooks_get_their_own_channels(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOOK_URL", "https://hooks.example.com/all")
        monkeypatch.setenv("THINGS_HOOK", "https://hooks.example.com/things")
        monkeypatch.delenv("MISSING_HOOK", raising=False)
        config = NotificationConfig(
            webhook_secret_ref="HOOK_URL",
            service_webhooks=[
                ServiceWebhook(service="things.example.com", secret_ref="THINGS_HOOK", name="Things API"),
                ServiceWebhook(service="other.example.com", secret_ref="MISSING_HOOK"),
            ],
        )

        dispatcher = build_notification_dispatcher(config)

        assert [c.channel_name for c in dispatcher.channels] == ["webhook", "webhook:things.example.com"]

    async def test_service_webhook_only_receives_its_service(self, monkeypatch: pytest.MonkeyPatch) -> None:
        posted: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            posted.append(json.loads(request.content))
            return httpx.Response(204)

        monkeypatch.setenv("THINGS_HOOK", "https://hooks.example.com/things")
        config = NotificationConfig(
            service_webhooks=[ServiceWebhook(service="things.example.com", secret_ref="THINGS_HOOK", name="Things")],
        )
        (channel,) = build_notification_dispatcher(config).channels
        channel._transport = httpx.MockTransport(handler)

        other = dataclasses.replace(_logged(), service="other.example.com")
        assert await channel.send(other) is True
        assert await channel.send(_logged()) is True

        assert [p["service"] for p in posted] == ["things.example.com"]
        assert posted[0]["name"] == "Things"
