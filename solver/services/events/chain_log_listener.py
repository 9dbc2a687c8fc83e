"""
On-chain log intent source.

Polls a contract's event logs up to ``latest - confirmation_blocks`` on a
fixed interval. Intents whose identifier has already been processed are
skipped, so a log delivered twice (overlapping ranges, restarts seeded
with ``processed_ids``) reaches the handler once.
"""

import asyncio
from typing import Any, Callable, Dict, Generic, Iterable, Optional, TypeVar

import structlog

from ...config import settings
from ...core.chain.client import ChainClient
from ...core.chain.models import EventLog
from ...core.filler.models import OriginContext
from .base import HandlerDelivery, IntentHandler, Unsubscribe


logger = structlog.stdlib.get_logger(__name__)

T = TypeVar("T")


class ChainLogSource(Generic[T]):
    """Polling event-log source for one contract on one chain."""

    def __init__(
        self,
        client: ChainClient,
        chain_id: int,
        contract_name: str,
        address: str,
        event_name: str,
        parse: Callable[[EventLog], T],
        intent_id: Callable[[T], str],
        chain_name: Optional[str] = None,
        poll_interval: Optional[float] = None,
        confirmation_blocks: Optional[int] = None,
        initial_block: Optional[int] = None,
        max_block_range: Optional[int] = None,
        processed_ids: Iterable[str] = (),
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.client = client
        self.chain_id = int(chain_id)
        self.chain_name = chain_name
        self.contract = client.contract(self.chain_id, contract_name, address)
        self.event_name = event_name
        self.parse = parse
        self.intent_id = intent_id
        self.poll_interval = (
            settings.chain_log_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self.confirmation_blocks = (
            settings.chain_log_confirmation_blocks
            if confirmation_blocks is None
            else confirmation_blocks
        )
        self.max_block_range = (
            settings.chain_log_max_block_range if max_block_range is None else max_block_range
        )
        self.next_block = initial_block
        # intent id -> block it was delivered from; None for ids seeded at startup
        self.processed: Dict[str, Optional[int]] = {str(i).lower(): None for i in processed_ids}
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self.log = logger.bind(
            source=f"{contract_name}.{event_name}", chain_id=self.chain_id, address=address
        )

    def subscribe(self, handler: IntentHandler) -> Unsubscribe:
        if self._task is not None:
            raise RuntimeError("Chain log source is already subscribed")
        self._closed = False
        deliver = HandlerDelivery(handler, self.log)
        self._task = asyncio.create_task(self._run(deliver))
        self.log.info("Listener started", event=self.event_name, chain_name=self.chain_name)
        return self.close

    async def close(self) -> None:
        self._closed = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.log.info("Listener stopped")

    async def _run(self, deliver: HandlerDelivery) -> None:
        while not self._closed:
            try:
                await self.poll_once(deliver)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.log.error("Failed polling event logs", error=str(e))
            await self._sleep(self.poll_interval)

    async def poll_once(self, handler: IntentHandler) -> int:
        """
        Fetch new confirmed logs once; returns how many intents were delivered.

        The pending range is requested in chunks of at most
        ``max_block_range`` blocks and ``next_block`` advances after each
        chunk, so a failing chunk is retried alone on the next poll.
        """
        latest = await self.client.get_latest_block(self.chain_id)
        to_block = latest.number - self.confirmation_blocks

        if self.next_block is None:
            self.next_block = to_block

        delivered = 0
        while self.next_block <= to_block:
            chunk_end = min(to_block, self.next_block + self.max_block_range - 1)
            logs = await self.contract.get_logs(self.event_name, self.next_block, chunk_end)
            delivered += self._deliver(logs, handler)
            self.next_block = chunk_end + 1

        self._prune()
        return delivered

    def _deliver(self, logs: Iterable[EventLog], handler: IntentHandler) -> int:
        delivered = 0
        for entry in logs:
            try:
                intent = self.parse(entry)
                intent_id = str(self.intent_id(intent)).lower()
            except Exception as e:
                self.log.error("Error parsing event log", error=str(e), tx=entry.transaction_hash)
                continue

            if intent_id in self.processed:
                self.log.debug("Skipping processed intent", intent_id=intent_id)
                continue
            self.processed[intent_id] = entry.block_number

            handler(
                intent,
                OriginContext(
                    chain_name=self.chain_name,
                    chain_id=self.chain_id,
                    block_number=entry.block_number,
                    source=self.event_name,
                ),
            )
            delivered += 1
        return delivered

    def _prune(self) -> None:
        """Forget delivered ids whose block can no longer be queried again."""
        horizon = self.next_block - self.confirmation_blocks
        stale = [
            intent_id
            for intent_id, block in self.processed.items()
            if block is not None and block < horizon
        ]
        for intent_id in stale:
            del self.processed[intent_id]
