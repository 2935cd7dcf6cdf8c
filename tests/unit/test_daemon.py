"""Unit tests for auditor.core.daemon.manager — the ingest / server / signal race."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from auditor.core.config import AuditorConfig, IngestConfig
from auditor.core.daemon.manager import DaemonManager
from auditor.core.exceptions import StartupError
from auditor.core.ingest.tailer import Tailer
from auditor.core.store.memory import MemorySink
from tests.helpers import ManualEventSource, execve_line


class FakeServer:
    """Stands in for the uvicorn server: serves until asked to exit."""

    def __init__(self, fail: BaseException | None = None) -> None:
        self.fail = fail
        self.should_exit = False
        self.served = False

    async def serve(self) -> None:
        self.served = True
        if self.fail is not None:
            raise self.fail
        while not self.should_exit:
            await asyncio.sleep(0.01)


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    path = tmp_path / "audit.log"
    path.write_text(execve_line(1, "ls") + "\n")
    return path


def _manager(
    log_file: Path,
    sink: MemorySink,
    source: ManualEventSource,
    server: FakeServer,
    *,
    catch_up: bool = False,
) -> DaemonManager:
    config = AuditorConfig(ingest=IngestConfig(log_file=str(log_file), catch_up=catch_up))
    tailer = Tailer(log_file, sink, source, settle_seconds=0)
    return DaemonManager(config, sink=sink, tailer=tailer, server=server)


@pytest.mark.asyncio
async def test_stop_shuts_everything_down(log_file, sink, source) -> None:
    server = FakeServer()
    manager = _manager(log_file, sink, source, server)
    task = asyncio.create_task(manager.start())
    await asyncio.sleep(0.05)

    await manager.stop()
    await asyncio.wait_for(task, timeout=2.0)

    assert server.served
    assert server.should_exit
    assert source.stopped
    assert sink.closed


@pytest.mark.asyncio
async def test_server_failure_propagates(log_file, sink, source) -> None:
    server = FakeServer(fail=StartupError("Cannot serve on 127.0.0.1:8080"))
    manager = _manager(log_file, sink, source, server)
    with pytest.raises(StartupError, match="Cannot serve"):
        await asyncio.wait_for(manager.start(), timeout=2.0)
    assert source.stopped
    assert sink.closed


@pytest.mark.asyncio
async def test_ingest_end_stops_server(log_file, sink, source) -> None:
    server = FakeServer()
    manager = _manager(log_file, sink, source, server)
    task = asyncio.create_task(manager.start())
    await asyncio.sleep(0.05)

    source.channel.close()
    await asyncio.wait_for(task, timeout=2.0)
    assert server.should_exit


@pytest.mark.asyncio
async def test_catch_up_mode_ingests_existing(log_file, sink, source) -> None:
    manager = _manager(log_file, sink, source, FakeServer(), catch_up=True)
    task = asyncio.create_task(manager.start())
    await asyncio.sleep(0.05)
    assert len(sink) == 1
    await manager.stop()
    await asyncio.wait_for(task, timeout=2.0)


@pytest.mark.asyncio
async def test_skip_mode_ignores_existing(log_file, sink, source) -> None:
    manager = _manager(log_file, sink, source, FakeServer())
    task = asyncio.create_task(manager.start())
    await asyncio.sleep(0.05)
    assert len(sink) == 0
    assert manager.tailer.cursor == log_file.stat().st_size
    await manager.stop()
    await asyncio.wait_for(task, timeout=2.0)


@pytest.mark.asyncio
async def test_missing_log_file_is_startup_error(tmp_path, sink, source) -> None:
    manager = _manager(tmp_path / "missing.log", sink, source, FakeServer())
    with pytest.raises(StartupError):
        await manager.start()
    assert sink.closed


@pytest.mark.asyncio
async def test_unusable_data_dir_is_startup_error(tmp_path, log_file, sink, source) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    config = AuditorConfig(
        data_dir=str(blocker / "sub"),
        ingest=IngestConfig(log_file=str(log_file)),
    )
    tailer = Tailer(log_file, sink, source, settle_seconds=0)
    manager = DaemonManager(config, tailer=tailer, server=FakeServer())
    with pytest.raises(StartupError, match="data directory"):
        await manager.start()
