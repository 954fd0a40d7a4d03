"""Unit tests for the application bootstrap lifecycle."""

from __future__ import annotations

from pathlib import Path

import pytest

from discotrack.app import DiscoTrackApp, _ComponentError
from discotrack.models.config import DiscoTrackConfig, StorageConfig


class TestLifecycle:
    async def test_stop_before_start_is_a_no_op(self) -> None:
        app = DiscoTrackApp(DiscoTrackConfig())
        await app.stop()
        assert app.running is False

    async def test_unusable_storage_path_fails_startup(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        config = DiscoTrackConfig(storage=StorageConfig(storage_path=str(blocker / "storage")))
        app = DiscoTrackApp(config)

        with pytest.raises(_ComponentError) as exc_info:
            await app.start()

        assert exc_info.value.component == "snapshot_store"
        await app.stop()
        assert app.running is False

    async def test_invalid_environment_fails_startup(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISCOTRACK_LOG_LEVEL", "chatty")
        app = DiscoTrackApp()

        with pytest.raises(_ComponentError) as exc_info:
            await app.start()

        assert exc_info.value.component == "config"
