"""
Solver entry point.

Wires settings, logging, the chain client, the nonce sequencer and the
price service into one pipeline per enabled protocol, subscribes every
intent source to its pipeline and runs until interrupted.
"""

import asyncio
import signal
from typing import Awaitable, Callable, List, Optional

import structlog

from .config import Settings, settings
from .core.chain.client import ChainClient, Web3ChainClient
from .core.execution.nonce_manager import NonceSequencer
from .core.filler.pipeline import FillPipeline
from .logging_config import setup_logging
from .protocols import compactx, eco, hyperlane7683
from .providers.coingecko import CoingeckoProvider
from .services.price import PriceService


logger = structlog.stdlib.get_logger(__name__)


class Solver:
    """
    The running solver.

    Usage:
        solver = Solver.from_settings(settings)
        await solver.start()
        ...
        await solver.stop()
    """

    def __init__(
        self,
        chain_client: ChainClient,
        prices: Optional[PriceService] = None,
    ):
        self.chain_client = chain_client
        self.nonces = NonceSequencer.for_client(chain_client)
        self.prices = prices
        self.pipelines: List[FillPipeline] = []
        self._sources: List = []
        self._unsubscribes: List[Callable[[], Awaitable[None]]] = []

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "Solver":
        if not config.has_private_key:
            raise ValueError("PRIVATE_KEY must be set to run the solver")

        client = Web3ChainClient(
            config.rpc_urls,
            config.private_key,
            explorer_urls=config.explorer_urls,
        )
        solver = cls(client)

        if config.compactx_enabled:
            metadata = compactx.default_metadata()
            solver.prices = PriceService(CoingeckoProvider(), metadata.chain_info.keys())
            pipeline = compactx.create_filler(client, solver.prices, solver.nonces, metadata)
            solver.add(pipeline, compactx.create_listener(metadata))

        if config.hyperlane7683_enabled:
            metadata = hyperlane7683.default_metadata()
            pipeline = hyperlane7683.create_filler(client, solver.nonces, metadata)
            for source in hyperlane7683.create_chain_listeners(client, metadata):
                solver.add(pipeline, source)
            sse = hyperlane7683.create_sse_listener(metadata)
            if sse is not None:
                solver.add(pipeline, sse)

        if config.eco_enabled:
            metadata = eco.default_metadata(config)
            pipeline = eco.create_filler(client, solver.nonces, metadata)
            for source in eco.create_chain_listeners(client, metadata):
                solver.add(pipeline, source)

        return solver

    def add(self, pipeline: FillPipeline, source) -> None:
        """Route ``source``'s intents into ``pipeline`` once started."""
        if pipeline not in self.pipelines:
            self.pipelines.append(pipeline)
        self._sources.append((pipeline, source))

    async def start(self) -> None:
        if self.prices is not None:
            self.prices.start()

        for pipeline, source in self._sources:
            self._unsubscribes.append(source.subscribe(pipeline.dispatch))
            logger.info("Listener subscribed", protocol=pipeline.protocol_name)

        logger.info("Solver started", protocols=[p.protocol_name for p in self.pipelines])

    async def stop(self) -> None:
        """Stop every source and the price timer; fills in flight run to completion."""
        unsubscribes, self._unsubscribes = self._unsubscribes, []
        for unsubscribe in unsubscribes:
            await unsubscribe()

        if self.prices is not None:
            await self.prices.stop()

        for pipeline in self.pipelines:
            if pipeline.in_flight:
                logger.info("Waiting for in-flight fills", protocol=pipeline.protocol_name)
            await pipeline.drain()

        logger.info("Solver stopped")


async def run(config: Settings = settings) -> None:
    setup_logging(config.log_level, config)
    solver = Solver.from_settings(config)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    await solver.start()
    try:
        await stop.wait()
    finally:
        await solver.stop()


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
