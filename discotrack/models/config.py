"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ServiceOverride:
    """Per-service fetch settings; ``None`` falls back to the global value."""

    discovery_format: str | None = None
    visibility_label: str | None = None


@dataclass
class FetchConfig:
    """Discovery document fetch configuration."""

    services: list[str] = field(default_factory=list)
    discovery_format: str = "rest"
    visibility_label: str = ""
    timeout_seconds: int = 30
    overrides: dict[str, ServiceOverride] = field(default_factory=dict)

    def format_for(self, service: str) -> str:
        override = self.overrides.get(service)
        if override is not None and override.discovery_format:
            return override.discovery_format
        return self.discovery_format

    def label_for(self, service: str) -> str:
        override = self.overrides.get(service)
        if override is not None and override.visibility_label is not None:
            return override.visibility_label
        return self.visibility_label


@dataclass
class PollConfig:
    """Poll loop configuration."""

    check_interval: int = 3600


@dataclass
class StorageConfig:
    """Durable storage locations."""

    storage_path: str = "./data/storage"
    change_log_path: str = "./data/changes"


@dataclass
class ServiceWebhook:
    """A webhook that only receives changes for one service."""

    service: str
    secret_ref: str
    name: str = ""


@dataclass
class NotificationConfig:
    """Notification system configuration."""

    webhook_secret_ref: str = ""
    skip_revision_only: bool = True
    tracker_url: str = ""
    service_webhooks: list[ServiceWebhook] = field(default_factory=list)


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 3000
    max_results: int = 50


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class DiscoTrackConfig:
    """Top-level discotrack configuration."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
