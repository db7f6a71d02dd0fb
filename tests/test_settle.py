"""Tests del combinador settle_all.

Ejecutar:
    pytest tests/test_settle.py -v
"""

import asyncio

import pytest

from telemetry_api.errors import TransportError
from telemetry_api.polling import Settled, settle_all


async def ok(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


async def fail(delay=0.0):
    await asyncio.sleep(delay)
    raise TransportError("beehive", "down", 503)


class TestSettleAll:

    @pytest.mark.asyncio
    async def test_all_succeed(self):
        results = await settle_all({"a": ok(1), "b": ok(2)})

        assert list(results) == ["a", "b"]
        assert results["a"] == Settled(name="a", value=1)
        assert results["b"].value_or_none() == 2

    @pytest.mark.asyncio
    async def test_fast_failure_does_not_cancel_others(self):
        results = await settle_all({"slow": ok("data", delay=0.05), "fast": fail()})

        assert results["slow"].ok
        assert results["slow"].value == "data"
        assert not results["fast"].ok
        assert isinstance(results["fast"].error, TransportError)
        assert results["fast"].value_or_none() is None

    @pytest.mark.asyncio
    async def test_dispatches_all_before_waiting(self):
        started = []

        async def track(name):
            started.append(name)
            await asyncio.sleep(0.01)
            return name

        task = asyncio.ensure_future(settle_all({"a": track("a"), "b": track("b")}))
        await asyncio.sleep(0.001)

        assert started == ["a", "b"]
        await task

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await settle_all({}) == {}

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self):
        gate = asyncio.Event()
        child_cancelled = asyncio.Event()

        async def blocked():
            try:
                await gate.wait()
            except asyncio.CancelledError:
                child_cancelled.set()
                raise

        task = asyncio.ensure_future(settle_all({"a": blocked()}))
        await asyncio.sleep(0.001)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.wait_for(child_cancelled.wait(), timeout=1)
