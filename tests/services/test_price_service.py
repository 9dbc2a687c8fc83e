"""
Tests for the cached native price service.
"""

import asyncio

import pytest

from solver.core.errors import PriceUnavailableError, StalePriceError
from solver.services.price import PriceService


class Clock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeProvider:
    def __init__(self, prices):
        self.prices = prices
        self.calls = 0

    async def get_native_price(self, chain_id, vs_currency="usd"):
        self.calls += 1
        price = self.prices.get(chain_id)
        if isinstance(price, Exception):
            raise price
        return {"price_usd": price}


def _service(provider, clock, strict=False):
    return PriceService(
        provider,
        chain_ids=[10, 8453],
        update_interval=10,
        stale_after=30,
        strict=strict,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_missing_sample_raises_unavailable():
    service = _service(FakeProvider({}), Clock())

    with pytest.raises(PriceUnavailableError):
        service.get_price(10)


@pytest.mark.asyncio
async def test_update_populates_snapshot():
    service = _service(FakeProvider({10: 3000.0, 8453: 3001.0}), Clock())

    await service.update_prices()

    assert service.get_price(10) == 3000.0
    assert service.get_price(8453) == 3001.0
    assert set(service.snapshot) == {10, 8453}


@pytest.mark.asyncio
async def test_snapshot_is_read_only():
    service = _service(FakeProvider({10: 3000.0}), Clock())
    await service.update_prices()

    with pytest.raises(TypeError):
        service.snapshot[10] = None


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_sample():
    provider = FakeProvider({10: 3000.0, 8453: 3001.0})
    service = _service(provider, Clock())
    await service.update_prices()

    provider.prices[10] = RuntimeError("rate limited")
    provider.prices[8453] = 3100.0
    await service.update_prices()

    assert service.get_price(10) == 3000.0
    assert service.get_price(8453) == 3100.0


@pytest.mark.asyncio
async def test_stale_price_is_used_under_warn_policy():
    clock = Clock()
    service = _service(FakeProvider({10: 3000.0}), clock)
    await service.update_prices()

    clock.now += 31

    assert service.get_price(10) == 3000.0


@pytest.mark.asyncio
async def test_stale_price_raises_under_strict_policy():
    clock = Clock()
    service = _service(FakeProvider({10: 3000.0}), clock, strict=True)
    await service.update_prices()

    clock.now += 29
    assert service.get_price(10) == 3000.0

    clock.now += 2
    with pytest.raises(StalePriceError) as exc:
        service.get_price(10)
    assert exc.value.age_seconds == pytest.approx(31)


@pytest.mark.asyncio
async def test_start_runs_background_refresh_and_stop_cancels_it():
    provider = FakeProvider({10: 3000.0, 8453: 3001.0})
    service = _service(provider, Clock())

    service.start()
    service.start()
    await asyncio.sleep(0.01)

    assert service.running
    assert service.get_price(10) == 3000.0
    assert provider.calls == 2

    await service.stop()
    assert not service.running
