from __future__ import annotations

import asyncio

import pytest

from bulb.session.timers import Debounce, Throttle


@pytest.mark.asyncio
async def test_throttle_fires_leading_then_one_trailing():
    calls = []
    throttle = Throttle(0.1, lambda: calls.append(asyncio.get_running_loop().time()))

    throttle()
    assert len(calls) == 1

    for _ in range(5):
        throttle()
    assert len(calls) == 1
    assert throttle.pending

    await asyncio.sleep(0.3)
    assert len(calls) == 2
    assert not throttle.pending


@pytest.mark.asyncio
async def test_throttle_quiet_period_fires_immediately_again():
    calls = []
    throttle = Throttle(0.05, lambda: calls.append(1))

    throttle()
    await asyncio.sleep(0.15)
    throttle()
    assert calls == [1, 1]


@pytest.mark.asyncio
async def test_throttle_cancel_drops_trailing_call():
    calls = []
    throttle = Throttle(0.05, lambda: calls.append(1))
    throttle()
    throttle()
    throttle.cancel()
    await asyncio.sleep(0.15)
    assert calls == [1]


@pytest.mark.asyncio
async def test_debounce_collapses_burst_into_one_call():
    calls = []
    debounce = Debounce(0.1, lambda: calls.append(1))

    for _ in range(5):
        debounce()
        await asyncio.sleep(0.02)
    assert calls == []
    assert debounce.pending

    await asyncio.sleep(0.3)
    assert calls == [1]
    assert not debounce.pending


@pytest.mark.asyncio
async def test_debounce_flush_and_cancel():
    calls = []
    debounce = Debounce(10.0, lambda: calls.append(1))

    debounce()
    debounce.flush()
    assert calls == [1]

    debounce()
    debounce.cancel()
    debounce.flush()
    assert calls == [1]
