"""Tests for per-stage cancellation scopes."""
from __future__ import annotations

import asyncio

import pytest

from mindsync.scope import StageLeft, StageScope


class TestStageScope:
    @pytest.mark.asyncio
    async def test_call_returns_result(self):
        async def work():
            return 42

        scope = StageScope("view")
        assert await scope.call(work()) == 42

    @pytest.mark.asyncio
    async def test_cancel_turns_pending_call_into_stage_left(self):
        gate = asyncio.Event()

        async def slow():
            await gate.wait()
            return "late"

        scope = StageScope("upload")
        call = asyncio.ensure_future(scope.call(slow()))
        await asyncio.sleep(0)
        assert scope.pending == 1

        scope.cancel()
        gate.set()
        with pytest.raises(StageLeft):
            await call
        assert scope.active is False

    @pytest.mark.asyncio
    async def test_spawn_after_cancel_refused(self):
        async def work():
            return 1

        scope = StageScope("quiz")
        scope.cancel()
        with pytest.raises(StageLeft):
            scope.spawn(work())

    @pytest.mark.asyncio
    async def test_settle_waits_for_tasks(self):
        done = []

        async def work():
            await asyncio.sleep(0.01)
            done.append(True)

        scope = StageScope("view")
        scope.spawn(work())
        await scope.settle(timeout=1)
        assert done == [True]
        assert scope.pending == 0

    @pytest.mark.asyncio
    async def test_settle_without_tasks(self):
        await StageScope("vocab").settle(timeout=1)

    @pytest.mark.asyncio
    async def test_cancel_twice_is_noop(self):
        scope = StageScope("chat")
        scope.cancel()
        scope.cancel()
        assert scope.active is False
