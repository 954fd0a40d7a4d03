"""Unit tests for environment-driven configuration."""

from __future__ import annotations

import os

import pytest

from discotrack.config import load_config
from discotrack.models.config import ServiceOverride, ServiceWebhook


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("DISCOTRACK_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.fetch.services == []
        assert config.fetch.discovery_format == "rest"
        assert config.fetch.timeout_seconds == 30
        assert config.poll.check_interval == 3600
        assert config.storage.storage_path == "./data/storage"
        assert config.storage.change_log_path == "./data/changes"
        assert config.api.port == 3000
        assert config.api.max_results == 50
        assert config.notifications.skip_revision_only is True
        assert config.log.level == "info"


class TestOverrides:
    def test_services_are_split_trimmed_and_deduplicated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISCOTRACK_SERVICES", " a.example.com, b.example.com,,a.example.com ")
        assert load_config().fetch.services == ["a.example.com", "b.example.com"]

    def test_invalid_service_name(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISCOTRACK_SERVICES", "https://a.example.com/")
        with pytest.raises(ValueError, match="Invalid service hostname"):
            load_config()

    def test_integers_are_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISCOTRACK_CHECK_INTERVAL", "1")
        monkeypatch.setenv("DISCOTRACK_FETCH_TIMEOUT", "9999")
        monkeypatch.setenv("DISCOTRACK_API_PORT", "80")
        config = load_config()
        assert config.poll.check_interval == 10
        assert config.fetch.timeout_seconds == 300
        assert config.api.port == 1024

    def test_non_integer_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISCOTRACK_API_PORT", "eighty")
        with pytest.raises(ValueError):
            load_config()

    def test_tracker_url_trailing_slash_is_stripped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISCOTRACK_TRACKER_URL", "https://tracker.example.com/")
        assert load_config().notifications.tracker_url == "https://tracker.example.com"

    @pytest.mark.parametrize(("raw", "expected"), [("false", False), ("0", False), ("TRUE", True), ("yes", True)])
    def test_bool_parsing(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
        monkeypatch.setenv("DISCOTRACK_NOTIFICATIONS_SKIP_REVISION_ONLY", raw)
        assert load_config().notifications.skip_revision_only is expected

    def test_log_level_validation(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISCOTRACK_LOG_LEVEL", "DEBUG")
        assert load_config().log.level == "debug"
        monkeypatch.setenv("DISCOTRACK_LOG_LEVEL", "verbose")
        with pytest.raises(ValueError, match="Invalid log level"):
            load_config()


class TestPerServiceSettings:
    def test_service_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(
            "DISCOTRACK_SERVICE_OVERRIDES",
            "a.example.com:rpc:PREVIEW, b.example.com::TRUSTED, c.example.com:v2",
        )
        overrides = load_config().fetch.overrides
        assert overrides == {
            "a.example.com": ServiceOverride(discovery_format="rpc", visibility_label="PREVIEW"),
            "b.example.com": ServiceOverride(discovery_format=None, visibility_label="TRUSTED"),
            "c.example.com": ServiceOverride(discovery_format="v2", visibility_label=None),
        }

    def test_override_without_format_separator_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISCOTRACK_SERVICE_OVERRIDES", "a.example.com")
        with pytest.raises(ValueError, match="Invalid service override"):
            load_config()

    def test_service_webhooks(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(
            "DISCOTRACK_NOTIFICATIONS_SERVICE_WEBHOOKS",
            "a.example.com:A_HOOK:People API (Staging), b.example.com:B_HOOK",
        )
        assert load_config().notifications.service_webhooks == [
            ServiceWebhook(service="a.example.com", secret_ref="A_HOOK", name="People API (Staging)"),
            ServiceWebhook(service="b.example.com", secret_ref="B_HOOK"),
        ]

    @pytest.mark.parametrize("raw", ["a.example.com", "a.example.com:", "bad host:HOOK"])
    def test_invalid_service_webhook(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv("DISCOTRACK_NOTIFICATIONS_SERVICE_WEBHOOKS", raw)
        with pytest.raises(ValueError):
            load_config()
