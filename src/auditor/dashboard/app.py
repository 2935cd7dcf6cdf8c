"""
Query service — FastAPI app over the record store.

Routes::

    GET /api/audit_logs?page=&page_size=   newest-first page of records
    GET /api/audit_logs/search?q=&n=       top-n fuzzy matches
    GET /api/audit_logs/clear              drop records past retention
    GET /...                               static files (index.html)

Records are returned as ``{"timestamp": "YYYY-MM-DD HH:MM:SS", "command": ...}``.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from auditor import __version__
from auditor.core.constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SEARCH_RESULTS,
    MAX_PAGE,
    MAX_PAGE_SIZE,
    RETENTION_WEEKS,
)
from auditor.core.exceptions import SinkError, StartupError
from auditor.core.search import best_n
from auditor.core.store.sink import Sink, retention_cutoff

logger = logging.getLogger(__name__)


def create_app(
    sink: Sink,
    static_dir: Path | None = None,
    retention_weeks: int = RETENTION_WEEKS,
) -> FastAPI:
    """Build the FastAPI application bound to *sink*."""
    app = FastAPI(title="auditor", version=__version__)
    app.state.sink = sink

    @app.exception_handler(SinkError)
    async def _sink_error(request: Request, exc: SinkError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.get("/api/audit_logs")
    async def get_audit_logs(
        page: int = Query(1, ge=1, le=MAX_PAGE),
        page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ) -> list[dict[str, str]]:
        records = await sink.fetch_page(page, page_size)
        return [r.view().to_dict() for r in records]

    @app.get("/api/audit_logs/search")
    async def search_audit_logs(
        q: str = "",
        n: int = Query(DEFAULT_SEARCH_RESULTS, ge=0),
    ) -> list[dict[str, str]]:
        views = [r.view() for r in await sink.fetch_all()]
        return [v.to_dict() for v in best_n(q, views, n)]

    @app.get("/api/audit_logs/clear", response_class=PlainTextResponse)
    async def clear_audit_logs() -> str:
        deleted = await sink.delete_older_than(retention_cutoff(weeks=retention_weeks))
        logger.info("Cleared %d audit log(s) older than %d weeks", deleted, retention_weeks)
        return f"Audit logs older than {retention_weeks} weeks cleared successfully"

    if static_dir is not None:
        if static_dir.is_dir():
            app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
        else:
            logger.warning("Static directory not found, serving API only: %s", static_dir)

    return app


class EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the daemon."""

    def install_signal_handlers(self) -> None:  # uvicorn < 0.29
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:  # uvicorn >= 0.29
        yield

    async def serve(self, sockets=None) -> None:  # type: ignore[no-untyped-def]
        try:
            await super().serve(sockets=sockets)
        except SystemExit as exc:
            # uvicorn exits the process when it cannot bind.
            raise StartupError(
                f"Cannot serve on {self.config.host}:{self.config.port}"
            ) from exc


def build_server(
    app: FastAPI,
    host: str,
    port: int,
    log_level: str = "info",
) -> EmbeddedServer:
    config = uvicorn.Config(app, host=host, port=port, log_level=log_level.lower())
    return EmbeddedServer(config)
