"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from discotrack.models.config import (
    APIConfig,
    DiscoTrackConfig,
    FetchConfig,
    LogConfig,
    NotificationConfig,
    PollConfig,
    ServiceOverride,
    ServiceWebhook,
    StorageConfig,
)

_SERVICE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.\-]*$")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"DISCOTRACK_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _check_service(name: str) -> str:
    if not _SERVICE_RE.match(name):
        raise ValueError(f"Invalid service hostname: {name!r}")
    return name


def _parse_services(value: str) -> list[str]:
    services: list[str] = []
    for raw in value.split(","):
        name = raw.strip()
        if not name:
            continue
        if _check_service(name) not in services:
            services.append(name)
    return services


def _parse_overrides(value: str) -> dict[str, ServiceOverride]:
    """Parse ``host:format[:label]`` entries; an empty format keeps the global one."""
    overrides: dict[str, ServiceOverride] = {}
    for raw in value.split(","):
        entry = raw.strip()
        if not entry:
            continue
        parts = entry.split(":", 2)
        if len(parts) < 2:
            raise ValueError(f"Invalid service override: {entry!r}. Expected host:format[:label]")
        service = _check_service(parts[0].strip())
        overrides[service] = ServiceOverride(
            discovery_format=parts[1].strip() or None,
            visibility_label=parts[2].strip() if len(parts) == 3 else None,
        )
    return overrides


def _parse_service_webhooks(value: str) -> list[ServiceWebhook]:
    """Parse ``host:SECRET_REF[:Display Name]`` entries."""
    webhooks: list[ServiceWebhook] = []
    for raw in value.split(","):
        entry = raw.strip()
        if not entry:
            continue
        parts = entry.split(":", 2)
        if len(parts) < 2 or not parts[1].strip():
            raise ValueError(f"Invalid service webhook: {entry!r}. Expected host:SECRET_REF[:name]")
        webhooks.append(
            ServiceWebhook(
                service=_check_service(parts[0].strip()),
                secret_ref=parts[1].strip(),
                name=parts[2].strip() if len(parts) == 3 else "",
            )
        )
    return webhooks
def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> DiscoTrackConfig:
    """Load configuration from DISCOTRACK_* environment variables."""
    return DiscoTrackConfig(
        fetch=FetchConfig(
            services=_parse_services(_env("SERVICES", "")),
            discovery_format=_env("DISCOVERY_FORMAT", "rest"),
            visibility_label=_env("VISIBILITY_LABEL", ""),
            timeout_seconds=_env_int("FETCH_TIMEOUT", 30, min_val=1, max_val=300),
            overrides=_parse_overrides(_env("SERVICE_OVERRIDES", "")),
        ),
        poll=PollConfig(
            check_interval=_env_int("CHECK_INTERVAL", 3600, min_val=10),
        ),
        storage=StorageConfig(
            storage_path=_env("STORAGE_PATH", "./data/storage"),
            change_log_path=_env("CHANGE_LOG_PATH", "./data/changes"),
        ),
        notifications=NotificationConfig(
            webhook_secret_ref=_env("NOTIFICATIONS_WEBHOOK_SECRET_REF", ""),
            skip_revision_only=_env_bool("NOTIFICATIONS_SKIP_REVISION_ONLY", True),
            tracker_url=_env("TRACKER_URL", "").rstrip("/"),
            service_webhooks=_parse_service_webhooks(_env("NOTIFICATIONS_SERVICE_WEBHOOKS", "")),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 3000, min_val=1024, max_val=65535),
            max_results=_env_int("API_MAX_RESULTS", 50, min_val=1, max_val=500),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
