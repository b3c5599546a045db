"""Tests for the background session sweep in api/main.py.

The loop runs with a zero interval against a stand-in app whose sweep fails
on the first tick; the task must log it and keep going until cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from types import SimpleNamespace

from api.main import _sweep_loop


def _app_with_sweep(sweep):
    return SimpleNamespace(state=SimpleNamespace(auth_service=SimpleNamespace(sweep_expired_sessions=sweep)))


def test_sweep_loop_survives_unexpected_errors(caplog):
    calls: list[int] = []

    def sweep() -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("disk full")
        return 0

    async def run() -> bool:
        task = asyncio.create_task(_sweep_loop(_app_with_sweep(sweep), 0))

        async def wait_for_ticks() -> None:
            while len(calls) < 3:
                await asyncio.sleep(0)

        await asyncio.wait_for(wait_for_ticks(), timeout=5)
        still_running = not task.done()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return still_running

    with caplog.at_level(logging.ERROR, logger="sellerhub.api"):
        assert asyncio.run(run()) is True

    assert len(calls) >= 3
    assert "Session sweep failed" in caplog.text
    assert "disk full" in caplog.text


def test_sweep_loop_stops_on_cancel():
    async def run() -> bool:
        task = asyncio.create_task(_sweep_loop(_app_with_sweep(lambda: 0), 3600))
        await asyncio.sleep(0)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return task.cancelled()

    assert asyncio.run(run()) is True
