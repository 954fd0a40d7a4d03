"""Notification dispatcher and filtering for discotrack.

NotificationChannel    -- ABC every channel must implement.
NotificationDispatcher -- Fans out logged changes to all registered channels;
                          failures in one channel never block others or the
                          poll loop.
RevisionOnlyFilter     -- Suppresses change events whose only change is the
                          top-level ``revision`` field.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

import structlog

from discotrack.models.changes import LoggedChange
from discotrack.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.manager")

_REVISION_PATH = "revision"


class NotificationChannel(ABC):
    """Abstract base class for all notification channels.

    Every concrete channel must implement ``send``, which should not raise;
    return ``False`` instead.
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Human-readable channel identifier used in metrics and logs."""

    @abstractmethod
    async def send(self, change: LoggedChange) -> bool:
        """Deliver *change* via this channel.

        Returns:
            True  -- message accepted by the remote endpoint.
            False -- delivery failed (already logged inside implementation).
        """


class RevisionOnlyFilter:
    """Drops change events that only bump the document revision.

    Args:
        enabled: When False every change passes.
    """

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled

    def should_send(self, change: LoggedChange) -> bool:
        if not self._enabled:
            return True
        revision_only = (
            not change.additions
            and not change.deletions
            and len(change.modifications) == 1
            and change.modifications[0].path == _REVISION_PATH
        )
        if revision_only:
            _log.debug(
                "notification_suppressed_revision_only",
                service=change.service,
                timestamp=change.timestamp,
            )
            return False
        return True


class NotificationDispatcher:
    """Fan-out dispatcher that sends a logged change to every channel.

    * Never raises; exceptions from individual channels are caught and logged.
    * Never blocks the caller; ``dispatch`` schedules the fan-out as a
      background asyncio task.
    * No retry: a failed delivery is logged and counted, then dropped.
    """

    def __init__(
        self,
        channels: list[NotificationChannel],
        change_filter: RevisionOnlyFilter | None = None,
    ) -> None:
        self._channels = channels
        self._filter = change_filter or RevisionOnlyFilter(enabled=False)
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def dispatch(self, change: LoggedChange) -> None:
        """Schedule fan-out delivery of *change* as a background task.

        Must be called from a running event loop.
        """
        if not self._channels or not self._filter.should_send(change):
            return
        task = asyncio.ensure_future(self.fan_out(change))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def fan_out(self, change: LoggedChange) -> None:
        """Deliver *change* to every channel concurrently."""
        tasks = [self._send_one(channel, change) for channel in self._channels]
        await asyncio.gather(*tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Wait for in-flight deliveries to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _send_one(self, channel: NotificationChannel, change: LoggedChange) -> None:
        """Deliver to a single channel, recording metrics regardless of outcome."""
        try:
            success = await channel.send(change)
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "notification_channel_unexpected_error",
                channel=channel.channel_name,
                service=change.service,
                timestamp=change.timestamp,
                error=str(exc),
            )
            success = False

        label = "true" if success else "false"
        notifications_total.labels(channel=channel.channel_name, success=label).inc()

        if success:
            _log.info(
                "notification_sent",
                channel=channel.channel_name,
                service=change.service,
                timestamp=change.timestamp,
                tags=sorted(change.summary.tags),
            )
        else:
            _log.warning(
                "notification_failed",
                channel=channel.channel_name,
                service=change.service,
                timestamp=change.timestamp,
            )
