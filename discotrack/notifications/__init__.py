"""Notification system for discotrack.

Dispatches each LoggedChange produced by the poll loop to the configured
channels.  Delivery is best effort: no retries, no delivery guarantee.

Exports:
    NotificationChannel        -- Abstract base for all channel implementations.
    NotificationDispatcher     -- Sends a change to all registered channels
                                  without blocking the poll loop.
    RevisionOnlyFilter         -- Suppresses revision-only change events.
    WebhookNotificationChannel -- Generic JSON POST webhook channel.
    build_notification_dispatcher -- Factory used by the application bootstrap.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from discotrack.notifications.manager import (
    NotificationChannel,
    NotificationDispatcher,
    RevisionOnlyFilter,
)
from discotrack.notifications.webhook import WebhookNotificationChannel

if TYPE_CHECKING:
    from discotrack.models.config import NotificationConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "NotificationChannel",
    "NotificationDispatcher",
    "RevisionOnlyFilter",
    "WebhookNotificationChannel",
    "build_notification_dispatcher",
]


def _resolve_secret(ref: str) -> str:
    return os.environ.get(ref, "") if ref else ""


def build_notification_dispatcher(
    config: NotificationConfig,
) -> NotificationDispatcher:
    """Build a NotificationDispatcher from environment-resolved secrets.

    ``webhook_secret_ref`` is the *name* of an environment variable whose
    value is the webhook URL; that channel receives every service.  Each
    entry in ``service_webhooks`` adds a channel restricted to one service,
    its URL resolved the same way.  A channel is enabled only when its
    variable resolves to a non-empty string.
    """
    channels: list[NotificationChannel] = []

    webhook_url = _resolve_secret(config.webhook_secret_ref)
    if webhook_url:
        try:
            channels.append(WebhookNotificationChannel(url=webhook_url, tracker_url=config.tracker_url))
            _log.info("webhook_channel_enabled")
        except ValueError as exc:
            _log.warning("webhook_channel_disabled", reason=str(exc))
    elif config.webhook_secret_ref:
        _log.debug("webhook_channel_skipped", reason="secret ref env var is empty")

    for hook in config.service_webhooks:
        url = _resolve_secret(hook.secret_ref)
        if not url:
            _log.warning("service_webhook_skipped", service=hook.service, secret_ref=hook.secret_ref)
            continue
        channels.append(
            WebhookNotificationChannel(
                url=url,
                tracker_url=config.tracker_url,
                services=[hook.service],
                display_name=hook.name,
                name=f"webhook:{hook.service}",
            )
        )
        _log.info("service_webhook_enabled", service=hook.service)

    if not channels:
        _log.info("no_notification_channels_configured")

    return NotificationDispatcher(
        channels=channels,
        change_filter=RevisionOnlyFilter(enabled=config.skip_revision_only),
    )
