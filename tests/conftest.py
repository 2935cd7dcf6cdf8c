"""Shared pytest fixtures."""

from __future__ import annotations

import logging

import pytest

from auditor.core.store.memory import MemorySink
from tests.helpers import ManualEventSource


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def source() -> ManualEventSource:
    return ManualEventSource()


@pytest.fixture(autouse=True)
def _restore_auditor_logger():
    """configure_logging() detaches the auditor logger; put it back for caplog."""
    logger = logging.getLogger("auditor")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
