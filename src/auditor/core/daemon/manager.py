"""
Daemon manager.

The DaemonManager runs one auditor process lifetime:
  - Connects to the record store
  - Positions the tailer (skip existing content, or catch up on it)
  - Races the tailer, the HTTP server, and a SIGINT/SIGTERM stop signal

Whichever of the three finishes first ends the process. Nothing is
restarted here: if ingestion dies, the server is shut down with it and the
error propagates, leaving restart policy to systemd or whatever supervises
the process.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any

from auditor.core.config import AuditorConfig
from auditor.core.exceptions import SinkError, StartupError
from auditor.core.ingest.tailer import Tailer
from auditor.core.store.sink import Sink

logger = logging.getLogger(__name__)

_SHUTDOWN_GRACE_SECONDS = 5.0


class DaemonManager:
    """
    Top-level orchestrator for the auditor daemon.

    Lifecycle::

        manager = DaemonManager(config)
        await manager.start()    # blocks until a task ends or a signal arrives
        await manager.stop()     # from elsewhere, to request shutdown
    """

    def __init__(
        self,
        config: AuditorConfig,
        *,
        sink: Sink | None = None,
        tailer: Tailer | None = None,
        server: Any = None,
    ) -> None:
        self._config = config
        self._sink = sink
        self._tailer = tailer
        self._server = server
        self._shutdown_event = asyncio.Event()

    @property
    def sink(self) -> Sink | None:
        return self._sink

    @property
    def tailer(self) -> Tailer | None:
        return self._tailer

    async def start(self) -> None:
        """Start all subsystems and run until the race is decided."""
        logger.info("auditor daemon starting")
        try:
            await self._init_store()
            await self._init_tailer()
            self._init_server()
            self._setup_signal_handlers()
            logger.info("auditor daemon ready")
            await self._run_race()
        finally:
            await self._cleanup()
            logger.info("auditor daemon stopped")

    async def stop(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    async def _init_store(self) -> None:
        if self._sink is not None:
            return
        from auditor.core.store.database import Database

        try:
            db = Database(self._config.db_path)
            db.connect()
        except SinkError as exc:
            raise StartupError(str(exc)) from exc
        except OSError as exc:
            raise StartupError(f"Cannot prepare data directory: {exc}") from exc
        self._sink = db
        logger.info("Database connected: %s", db.path)

    async def _init_tailer(self) -> None:
        assert self._sink is not None
        if self._tailer is None:
            self._tailer = Tailer(
                self._config.log_path,
                self._sink,
                settle_seconds=self._config.settle_seconds,
            )
        await self._tailer.prepare()
        if self._config.ingest.catch_up:
            await self._tailer.catch_up()
        else:
            await self._tailer.skip_existing()

    def _init_server(self) -> None:
        if self._server is not None:
            return
        from auditor.dashboard.app import build_server, create_app

        assert self._sink is not None
        app = create_app(
            self._sink,
            static_dir=self._config.static_path,
            retention_weeks=self._config.retention.weeks,
        )
        self._server = build_server(
            app,
            host=self._config.server.host,
            port=self._config.server.port,
            log_level=self._config.logging.level,
        )

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def _run_race(self) -> None:
        assert self._tailer is not None
        tasks = {
            asyncio.create_task(self._tailer.run(), name="ingest"),
            asyncio.create_task(self._server.serve(), name="server"),
            asyncio.create_task(self._shutdown_event.wait(), name="shutdown"),
        }
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

        for t in pending:
            if t.get_name() == "server" and hasattr(self._server, "should_exit"):
                # Let uvicorn close its sockets and finish in-flight requests.
                self._server.should_exit = True
            else:
                t.cancel()
        if pending:
            _, stragglers = await asyncio.wait(pending, timeout=_SHUTDOWN_GRACE_SECONDS)
            for t in stragglers:
                t.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        for t in done:
            if t.cancelled():
                continue
            exc = t.exception()
            if exc is not None:
                logger.error("%s task failed: %s", t.get_name(), exc)
                raise exc
            if t.get_name() == "shutdown":
                logger.info("Received stop signal, shutting down")
            else:
                logger.info("%s task finished, shutting down", t.get_name())

    # ------------------------------------------------------------------
    # Signal handling
    # ------------------------------------------------------------------

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._shutdown_event.set)
            except (NotImplementedError, RuntimeError):
                # Not on the main thread (tests) or not supported (Windows).
                logger.debug("Cannot install handler for %s", sig.name)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    async def _cleanup(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass
        if self._sink is not None:
            await self._sink.aclose()
