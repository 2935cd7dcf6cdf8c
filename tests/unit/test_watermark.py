"""Unit tests for auditor.core.watermark."""

from __future__ import annotations

import asyncio

import pytest

from auditor.core.models import AuditTimestamp
from auditor.core.watermark import Watermark


@pytest.mark.asyncio
async def test_first_record_always_admitted() -> None:
    wm = Watermark()
    assert await wm.admit(AuditTimestamp(0)) is True
    assert await wm.get() == AuditTimestamp(0)


@pytest.mark.asyncio
async def test_strictly_increasing_only() -> None:
    wm = Watermark(AuditTimestamp(100))
    assert await wm.admit(AuditTimestamp(99)) is False
    assert await wm.admit(AuditTimestamp(100)) is False
    assert await wm.admit(AuditTimestamp(100, 1)) is True
    assert await wm.get() == AuditTimestamp(100, 1)


@pytest.mark.asyncio
async def test_rejection_leaves_value_unchanged() -> None:
    wm = Watermark(AuditTimestamp(100))
    await wm.admit(AuditTimestamp(50))
    assert await wm.get() == AuditTimestamp(100)


@pytest.mark.asyncio
async def test_reset() -> None:
    wm = Watermark(AuditTimestamp(100))
    await wm.reset(None)
    assert await wm.get() is None
    assert await wm.admit(AuditTimestamp(1)) is True


@pytest.mark.asyncio
async def test_concurrent_admits_accept_once() -> None:
    wm = Watermark()
    ts = AuditTimestamp(42)
    results = await asyncio.gather(*(wm.admit(ts) for _ in range(10)))
    assert results.count(True) == 1
