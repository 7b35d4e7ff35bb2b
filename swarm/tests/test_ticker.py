import asyncio

import pytest

from swarm.engine.ticker import Ticker


def test_ticker_rejects_bad_interval():
    with pytest.raises(ValueError):
        Ticker(0, lambda: None)


def test_ticker_calls_step_until_stopped():
    calls = []

    async def scenario():
        ticker = Ticker(0.01, lambda: calls.append(len(calls)))
        ticker.start()
        assert ticker.running
        await asyncio.sleep(0.1)
        await ticker.stop()
        assert not ticker.running
        return ticker.ticks

    ticks = asyncio.run(scenario())
    assert ticks >= 2
    assert len(calls) == ticks


def test_ticker_survives_failing_step():
    attempts = []

    def step():
        attempts.append(1)
        raise RuntimeError("boom")

    async def scenario():
        ticker = Ticker(0.01, step)
        ticker.start()
        await asyncio.sleep(0.1)
        await ticker.stop()

    asyncio.run(scenario())
    assert len(attempts) >= 2
