"""
Native asset price cache.

One background task refreshes the USD price of every configured chain's
native asset. Readers get the latest immutable snapshot without locking;
a refresh builds a new snapshot and swaps it in.

Staleness policy:
- "warn" (default): a sample older than the threshold is logged and still used
- "strict": a stale sample raises StalePriceError
"""

import asyncio
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional

import structlog

from ..config import settings
from ..core.errors import PriceUnavailableError, StalePriceError
from ..providers.base import PriceProvider


logger = structlog.stdlib.get_logger(__name__)


@dataclass(frozen=True)
class PriceSample:
    chain_id: int
    price: float
    updated_at: float


class PriceService:
    """Timer-refreshed native price per chain."""

    def __init__(
        self,
        provider: PriceProvider,
        chain_ids: Iterable[int],
        update_interval: Optional[float] = None,
        stale_after: Optional[float] = None,
        strict: Optional[bool] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.provider = provider
        self.chain_ids = tuple(int(c) for c in chain_ids)
        self.update_interval = (
            settings.price_update_interval_seconds if update_interval is None else update_interval
        )
        self.stale_after = (
            settings.price_stale_after_seconds if stale_after is None else stale_after
        )
        self.strict = settings.strict_price_staleness if strict is None else strict

        self._clock = clock
        self._prices: Mapping[int, PriceSample] = MappingProxyType({})
        self._task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> Mapping[int, PriceSample]:
        return self._prices

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        logger.info(
            "Price service started",
            chains=self.chain_ids,
            interval=self.update_interval,
            stale_policy="strict" if self.strict else "warn",
        )
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                await self.update_prices()
            except Exception as e:
                logger.error("Failed to update prices", error=str(e))
            await asyncio.sleep(self.update_interval)

    async def update_prices(self) -> None:
        """Fetch every chain's price; a failed fetch keeps the previous sample."""
        updated = dict(self._prices)
        for chain_id in self.chain_ids:
            try:
                result = await self.provider.get_native_price(chain_id)
                price = float(result["price_usd"])
            except Exception as e:
                logger.error("Failed to update price", chain_id=chain_id, error=str(e))
                continue
            updated[chain_id] = PriceSample(chain_id=chain_id, price=price, updated_at=self._clock())
            logger.debug("Updated ETH price", chain_id=chain_id, price=price)
        self._prices = MappingProxyType(updated)

    def get_price(self, chain_id: int) -> float:
        """
        Latest native price for ``chain_id``.

        Raises:
            PriceUnavailableError: no sample has been recorded.
            StalePriceError: the sample is stale and the policy is strict.
        """
        sample = self._prices.get(int(chain_id))
        if sample is None:
            raise PriceUnavailableError(int(chain_id))

        age = self._clock() - sample.updated_at
        if age > self.stale_after:
            if self.strict:
                raise StalePriceError(int(chain_id), age)
            logger.warning("Price data is stale", chain_id=chain_id, age_seconds=round(age, 1))

        return sample.price
