"""
Nonce sequencing for concurrent fill submissions.

Every chain owns one chained future. The first request for a chain seeds it
with the signer's pending transaction count; each request then hands out
the future it found and replaces it with "that value + 1" before
suspending. Requests are therefore served strictly in arrival order and no
two callers can ever receive the same nonce, whatever order the underlying
futures resolve in.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Optional

import structlog


logger = structlog.stdlib.get_logger(__name__)

SeedFetcher = Callable[[int], Awaitable[int]]


def _retrieve_exception(future: "asyncio.Future[int]") -> None:
    if not future.cancelled():
        future.exception()


class NonceSequencer:
    """
    Hands out strictly increasing nonces per chain.

    Features:
    - Seeds from the on-chain pending transaction count on first use
    - FIFO issuance under concurrent requests, no duplicates, no gaps
    - Issued nonces are never reused, even if their submission fails
    - A failed seed fetch is retried by the next request for that chain
    """

    def __init__(self, fetch_transaction_count: SeedFetcher):
        """
        Args:
            fetch_transaction_count: Coroutine returning the signer's pending
                transaction count for a chain id.
        """
        self._fetch = fetch_transaction_count
        self._chains: Dict[int, "asyncio.Future[int]"] = {}

    @classmethod
    def for_client(cls, client) -> "NonceSequencer":
        """Build a sequencer seeded from a ChainClient's signer."""
        return cls(lambda chain_id: client.get_transaction_count(chain_id))

    async def next_nonce(self, chain_id: int) -> int:
        """
        Reserve and return the next nonce for ``chain_id``.

        The reservation happens before the first suspension point, so the
        order in which callers enter this coroutine is the order in which
        nonces are issued.
        """
        reserved = self._reserve(int(chain_id))
        nonce = await reserved
        logger.debug("Nonce issued", chain_id=chain_id, nonce=nonce)
        return nonce

    def _reserve(self, chain_id: int) -> "asyncio.Future[int]":
        current = self._chains.get(chain_id)

        if current is None or self._has_failed(current):
            if current is not None:
                logger.warning("Re-seeding nonce after failed fetch", chain_id=chain_id)
            current = self._track(asyncio.ensure_future(self._seed(chain_id)))

        self._chains[chain_id] = self._track(asyncio.ensure_future(self._increment(current)))
        return current

    @staticmethod
    def _track(future: "asyncio.Future[int]") -> "asyncio.Future[int]":
        # Increments chained on a failed seed fail with it and may never be awaited
        future.add_done_callback(_retrieve_exception)
        return future

    async def _seed(self, chain_id: int) -> int:
        nonce = await self._fetch(chain_id)
        logger.info("Nonce seeded from chain", chain_id=chain_id, nonce=nonce)
        return int(nonce)

    @staticmethod
    async def _increment(previous: "asyncio.Future[int]") -> int:
        return await previous + 1

    @staticmethod
    def _has_failed(future: "asyncio.Future[int]") -> bool:
        if not future.done():
            return False
        return future.cancelled() or future.exception() is not None

    def peek(self, chain_id: int) -> Optional[int]:
        """The next nonce that would be issued, if already resolved."""
        future = self._chains.get(int(chain_id))
        if future is None or not future.done() or self._has_failed(future):
            return None
        return future.result()

    def reset(self, chain_id: Optional[int] = None) -> None:
        """Forget sequencing state so the next request re-seeds from chain."""
        if chain_id is None:
            self._chains.clear()
        else:
            self._chains.pop(int(chain_id), None)
