"""Application bootstrap for discotrack.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → snapshot store → change log → fetcher
              → notifications → poller → REST

Shutdown is graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that
a single failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from discotrack.config import load_config
from discotrack.models.config import DiscoTrackConfig
from discotrack.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from discotrack.collector import DocumentFetcher, Poller
    from discotrack.ledger import ChangeLog
    from discotrack.notifications import NotificationDispatcher
    from discotrack.storage import SnapshotStore

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class DiscoTrackApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self, config: DiscoTrackConfig | None = None) -> None:
        self.config: DiscoTrackConfig | None = config

        self._snapshots: SnapshotStore | None = None
        self._change_log: ChangeLog | None = None
        self._fetcher: DocumentFetcher | None = None
        self._notifications: NotificationDispatcher | None = None
        self._poller: Poller | None = None
        self._rest_server: object | None = None

        # Background tasks that must be cancelled on shutdown
        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        The caller (main()) turns this into a non-zero exit.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            try:
                self.config = load_config()
            except ValueError as exc:
                raise _ComponentError("config", exc) from exc

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("discotrack starting", version=_discotrack_version())

        # --- 3. Snapshot store -------------------------------------------
        await self._start_snapshot_store()

        # --- 4. Change log -----------------------------------------------
        await self._start_change_log()

        # --- 5. Document fetcher -----------------------------------------
        await self._start_fetcher()

        # --- 6. Notification dispatcher ----------------------------------
        await self._start_notifications()

        # --- 7. Poll loop ------------------------------------------------
        await self._start_poller()

        # --- 8. REST API -------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info(
            "discotrack started",
            port=self.config.api.port,
            services=len(self.config.fetch.services),
        )

    # ------------------------------------------------------------------
    # Component startup helpers
    # ------------------------------------------------------------------

    async def _start_snapshot_store(self) -> None:
        """Open the snapshot directory and load every stored document."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting snapshot store")
        try:
            from discotrack.storage import SnapshotStore

            store = SnapshotStore(self.config.storage.storage_path)
            loaded = await asyncio.to_thread(store.load)
            self._snapshots = store
            self._log.info("snapshot store started", path=str(store.base_path), snapshots=loaded)
        except Exception as exc:
            raise _ComponentError("snapshot_store", exc) from exc

    async def _start_change_log(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting change log")
        try:
            from discotrack.ledger import ChangeLog

            change_log = ChangeLog(self.config.storage.change_log_path)
            self._change_log = change_log
            self._log.info("change log started", path=str(change_log.base_path))
        except Exception as exc:
            raise _ComponentError("change_log", exc) from exc

    async def _start_fetcher(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting document fetcher")
        try:
            from discotrack.collector import DocumentFetcher

            self._fetcher = DocumentFetcher(self.config.fetch)
            self._log.info(
                "document fetcher started",
                services=len(self.config.fetch.services),
                discovery_format=self.config.fetch.discovery_format,
            )
        except Exception as exc:
            raise _ComponentError("fetcher", exc) from exc

    async def _start_notifications(self) -> None:
        """Configure notification dispatcher channels."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting notifications")
        try:
            from discotrack.notifications import build_notification_dispatcher

            dispatcher = build_notification_dispatcher(config=self.config.notifications)
            self._notifications = dispatcher
            self._log.info("notifications started", channels=len(dispatcher.channels))
        except Exception as exc:
            # Notification failure is non-fatal: changes are still logged
            self._log.warning(
                "notification dispatcher failed to start; notifications will be suppressed",
                error=str(exc),
            )
            self._notifications = None

    async def _start_poller(self) -> None:
        """Launch the poll loop as a background task."""
        assert self._log is not None
        assert self.config is not None
        assert self._fetcher is not None
        assert self._snapshots is not None
        assert self._change_log is not None
        self._log.debug("starting poller")
        try:
            from discotrack.collector import Poller

            poller = Poller(
                fetcher=self._fetcher,
                snapshots=self._snapshots,
                change_log=self._change_log,
                dispatcher=self._notifications,
                interval=self.config.poll.check_interval,
            )
            task = asyncio.create_task(poller.run_forever(), name="poller")
            self._background_tasks.append(task)
            self._poller = poller
            self._log.info("poller started", interval=self.config.poll.check_interval)
        except Exception as exc:
            raise _ComponentError("poller", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        assert self._snapshots is not None
        assert self._change_log is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from discotrack.api import build_app

            fastapi_app = build_app(
                change_log=self._change_log,
                snapshot_store=self._snapshots,
                config=self.config,
            )
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("discotrack shutting down")

        self._running = False

        # Poll loop stops between cycles; a cycle in progress is cancelled below.
        await self._stop_component("poller", self._poller)

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_component("notifications", self._notifications)

        log.info("discotrack stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:  # noqa: BLE001
            log.error("component stop raised an error", component=name, error=str(exc))


def _discotrack_version() -> str:
    from discotrack import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: DiscoTrackConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = DiscoTrackApp(config)
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        # Block until shutdown is triggered (background tasks run concurrently)
        while app.running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()
